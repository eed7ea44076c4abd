"""Rebuild-on-demand snapshot of inscriptions waiting in the node's mempool.

Nodes expose no cheap diff of their mempool, so every :meth:`MempoolIndex.update`
lists all pending transaction ids, fetches each body, and extracts inscriptions
into a brand new :class:`MempoolSnapshot`. The finished snapshot replaces the
previous one in a single swap under a lock; readers always hold one complete
snapshot. Mempool inscriptions carry no sequence numbers.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Protocol, Sequence

from ordview.errors import UpstreamUnavailableError
from ordview.model import Inscription, InscriptionId, OutPoint, Transaction, TxOut
from ordview.ordinals.inscriptions import InscriptionExtractor
from ordview.rpc_client import RPCError, RPCTransportError

logger = logging.getLogger(__name__)


class PendingTransactionSource(Protocol):
    def list_pending_transaction_ids(self) -> Sequence[str]: ...

    def get_raw_transaction(self, txid: str) -> Transaction: ...


@dataclass(frozen=True)
class MempoolSnapshot:
    """Point-in-time view of the mempool. Never mutated after publication."""

    transactions: Dict[str, Transaction] = field(default_factory=dict)
    inscriptions: Dict[InscriptionId, Inscription] = field(default_factory=dict)
    outputs: Dict[OutPoint, TxOut] = field(default_factory=dict)
    generation: int = 0


class MempoolIndex:
    """Owns the published mempool snapshot and rebuilds it on request."""

    def __init__(self, extractor: InscriptionExtractor | None = None) -> None:
        self.extractor = extractor or InscriptionExtractor()
        self._lock = threading.Lock()
        self._snapshot = MempoolSnapshot()

    @property
    def snapshot(self) -> MempoolSnapshot:
        with self._lock:
            return self._snapshot

    def update(self, rpc: PendingTransactionSource) -> MempoolSnapshot:
        """Rebuild the snapshot from ``rpc`` and publish it.

        Raises :class:`UpstreamUnavailableError` when the pending id list cannot
        be fetched. Individual transactions that fail to resolve are logged and
        left out of the new snapshot.
        """

        try:
            txids = list(rpc.list_pending_transaction_ids())
        except (RPCError, RPCTransportError) as exc:
            raise UpstreamUnavailableError(f"Could not list mempool transactions: {exc}") from exc

        transactions: Dict[str, Transaction] = {}
        for txid in txids:
            try:
                transactions[txid] = rpc.get_raw_transaction(txid)
            except (RPCError, RPCTransportError, ValueError) as exc:
                logger.warning("Dropping mempool transaction %s: %s", txid, exc)

        inscriptions: Dict[InscriptionId, Inscription] = {}
        outputs: Dict[OutPoint, TxOut] = {}
        for transaction in transactions.values():
            for inscription_id, inscription in self.extractor.extract(transaction):
                inscriptions[inscription_id] = inscription
            for vout, output in enumerate(transaction.outputs):
                outputs[OutPoint(txid=transaction.txid, vout=vout)] = output

        with self._lock:
            snapshot = MempoolSnapshot(
                transactions=transactions,
                inscriptions=inscriptions,
                outputs=outputs,
                generation=self._snapshot.generation + 1,
            )
            self._snapshot = snapshot

        logger.info(
            "Mempool snapshot %d: %d of %d transactions resolved, %d inscriptions",
            snapshot.generation,
            len(transactions),
            len(txids),
            len(inscriptions),
        )
        return snapshot


__all__ = ["MempoolIndex", "MempoolSnapshot", "PendingTransactionSource"]
