"""Assemble inscription views from the confirmed index or the mempool snapshot.

Two assemblers share the :class:`InscriptionAssembler` contract but make
different promises about which fields exist:

* :class:`ConfirmedInscriptionAssembler` joins entry metadata, satpoint, the
  owning output, its address, rarity, and sequence neighbours into an
  :class:`InscriptionView`.
* :class:`MempoolInscriptionAssembler` only knows what an unconfirmed envelope
  carries and returns a :class:`LightInscriptionView`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ordview.chain import Chain
from ordview.errors import IndexLookupError, NotFoundError
from ordview.model import InscriptionId, SatPoint, Transaction, TxOut
from ordview.ordinals.index_store import InscriptionIndex
from ordview.ordinals.mempool import MempoolIndex
from ordview.ordinals.sat import SatView, describe_sat
from ordview.rpc_client import RPCError, RPCTransportError

logger = logging.getLogger(__name__)

SatInfo = Callable[[int], SatView]


@dataclass(frozen=True)
class InscriptionView:
    """Fully joined view of a confirmed inscription."""

    inscription_id: InscriptionId
    address: Optional[str]
    output_value: Optional[int]
    sat: Optional[SatView]
    content_len: Optional[int]
    genesis_height: int
    genesis_fee: int
    timestamp: int
    transaction: str
    location: str
    output: Optional[TxOut]
    offset: int
    chain: Chain
    content_type: Optional[str]
    next: Optional[InscriptionId]
    number: int
    previous: Optional[InscriptionId]
    satpoint: SatPoint
    original_owner: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inscription_id": str(self.inscription_id),
            "address": self.address,
            "output_value": self.output_value,
            "sat": self.sat.to_dict() if self.sat else None,
            "content_len": self.content_len,
            "genesis_height": self.genesis_height,
            "genesis_fee": self.genesis_fee,
            "timestamp": self.timestamp,
            "transaction": self.transaction,
            "location": self.location,
            "output": self.output.to_dict() if self.output else None,
            "offset": self.offset,
            "chain": self.chain.value,
            "content_type": self.content_type,
            "next": str(self.next) if self.next else None,
            "number": self.number,
            "previous": str(self.previous) if self.previous else None,
            "satpoint": str(self.satpoint),
            "original_owner": self.original_owner,
        }


@dataclass(frozen=True)
class LightInscriptionView:
    """What is known about an inscription that has not confirmed yet."""

    inscription_id: InscriptionId
    content_len: Optional[int]
    transaction: str
    content_type: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inscription_id": str(self.inscription_id),
            "content_len": self.content_len,
            "transaction": self.transaction,
            "content_type": self.content_type,
        }


class InscriptionAssembler:
    """Common contract: turn an inscription id into a view or raise NotFound."""

    def assemble(self, inscription_id: InscriptionId) -> Any:
        raise NotImplementedError


class ConfirmedInscriptionAssembler(InscriptionAssembler):
    """Build full views from the confirmed index, with an optional node fallback.

    ``original_owner_key`` selects which output of the genesis transaction is
    read for the original owner: ``"vout"`` uses the satpoint's output index,
    ``"offset"`` reproduces the legacy behaviour of treating the satpoint's
    byte offset as an output index.
    """

    def __init__(
        self,
        index: InscriptionIndex,
        chain: Chain = Chain.MAINNET,
        rpc: Any = None,
        sat_info: SatInfo = describe_sat,
        original_owner_key: str = "vout",
    ) -> None:
        if original_owner_key not in ("vout", "offset"):
            raise ValueError(f"Unsupported original owner key: {original_owner_key}")
        self.index = index
        self.chain = chain
        self.rpc = rpc
        self.sat_info = sat_info
        self.original_owner_key = original_owner_key

    def assemble(self, inscription_id: InscriptionId) -> InscriptionView:
        entry = self.index.get_inscription_entry(inscription_id)
        if entry is None:
            raise NotFoundError(f"inscription {inscription_id}")

        inscription = self.index.get_inscription_by_id(inscription_id)
        if inscription is None:
            raise NotFoundError(f"inscription {inscription_id}")

        satpoint = self.index.get_inscription_satpoint_by_id(inscription_id)
        if satpoint is None:
            raise NotFoundError(f"inscription {inscription_id}")

        transaction = self._current_transaction(satpoint.outpoint.txid)
        output: Optional[TxOut] = None
        if transaction is not None:
            vout = satpoint.outpoint.vout
            if vout < 0 or vout >= len(transaction.outputs):
                raise NotFoundError(f"inscription {inscription_id} current transaction output")
            output = transaction.outputs[vout]

        address = self.chain.address_from_script(output.script_pubkey) if output else None

        previous = None
        if entry.number != 0:
            try:
                previous = self.index.get_inscription_id_by_number(entry.number - 1)
            except IndexLookupError as exc:
                logger.debug("Previous lookup failed for %s: %s", inscription_id, exc)
        next_id = self.index.get_inscription_id_by_number(entry.number + 1)

        sat = self.sat_info(entry.sat) if entry.sat is not None else None

        return InscriptionView(
            inscription_id=inscription_id,
            address=address,
            output_value=output.value if output else None,
            sat=sat,
            content_len=inscription.content_length,
            genesis_height=entry.height,
            genesis_fee=entry.fee,
            timestamp=entry.timestamp,
            transaction=inscription_id.txid,
            location=str(satpoint),
            output=output,
            offset=satpoint.offset,
            chain=self.chain,
            content_type=inscription.content_type_text,
            next=next_id,
            number=entry.number,
            previous=previous,
            satpoint=satpoint,
            original_owner=self._original_owner(inscription_id, satpoint),
        )

    def _current_transaction(self, txid: str) -> Optional[Transaction]:
        try:
            transaction = self.index.get_transaction(txid)
        except IndexLookupError as exc:
            logger.debug("Index lookup for transaction %s failed: %s", txid, exc)
            transaction = None
        if transaction is not None or self.rpc is None:
            return transaction

        try:
            return self.rpc.get_raw_transaction(txid)
        except (RPCError, RPCTransportError, ValueError) as exc:
            logger.debug("Node lookup for transaction %s failed: %s", txid, exc)
            return None

    def _original_owner(self, inscription_id: InscriptionId, satpoint: SatPoint) -> Optional[str]:
        genesis = self.index.get_transaction(inscription_id.txid)
        if genesis is None:
            return None
        position = satpoint.outpoint.vout if self.original_owner_key == "vout" else satpoint.offset
        if position < 0 or position >= len(genesis.outputs):
            return None
        return self.chain.address_from_script(genesis.outputs[position].script_pubkey)


class MempoolInscriptionAssembler(InscriptionAssembler):
    """Build light views from the currently published mempool snapshot."""

    def __init__(self, mempool: MempoolIndex) -> None:
        self.mempool = mempool

    def assemble(self, inscription_id: InscriptionId) -> LightInscriptionView:
        inscription = self.mempool.snapshot.inscriptions.get(inscription_id)
        if inscription is None:
            raise NotFoundError(f"inscription {inscription_id}")
        return LightInscriptionView(
            inscription_id=inscription_id,
            content_len=inscription.content_length,
            transaction=inscription_id.txid,
            content_type=inscription.content_type_text,
        )

    def assemble_all(self) -> list[LightInscriptionView]:
        """Views for every inscription in one snapshot, in extraction order."""

        snapshot = self.mempool.snapshot
        return [
            LightInscriptionView(
                inscription_id=inscription_id,
                content_len=inscription.content_length,
                transaction=inscription_id.txid,
                content_type=inscription.content_type_text,
            )
            for inscription_id, inscription in snapshot.inscriptions.items()
        ]


__all__ = [
    "ConfirmedInscriptionAssembler",
    "InscriptionAssembler",
    "InscriptionView",
    "LightInscriptionView",
    "MempoolInscriptionAssembler",
]
