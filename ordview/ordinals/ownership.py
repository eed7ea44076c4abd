"""Map transaction outputs to the inscriptions they currently carry."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ordview.chain import Chain
from ordview.model import Block, InscriptionId, OutPoint, Transaction
from ordview.ordinals.index_store import InscriptionIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputView:
    """An output that carries at least one inscription."""

    inscriptions: List[InscriptionId]
    value: int
    script_pubkey: str
    address: Optional[str]
    transaction: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inscriptions": [str(inscription_id) for inscription_id in self.inscriptions],
            "value": self.value,
            "script_pubkey": self.script_pubkey,
            "address": self.address,
            "transaction": self.transaction,
        }


class OutputOwnershipResolver:
    """Resolve per-output and per-block inscription ownership."""

    def __init__(self, index: InscriptionIndex, chain: Chain = Chain.MAINNET) -> None:
        self.index = index
        self.chain = chain

    def inscriptions_on_output(self, outpoint: OutPoint) -> List[InscriptionId]:
        return list(self.index.get_inscriptions_on_output(outpoint))

    def inscription_ids_for_transaction(self, transaction: Transaction) -> List[InscriptionId]:
        ids: List[InscriptionId] = []
        for vout in range(len(transaction.outputs)):
            ids.extend(self.inscriptions_on_output(OutPoint(txid=transaction.txid, vout=vout)))
        return ids

    def inscription_ids_for_block(self, block: Block) -> List[InscriptionId]:
        """Inscription ids in transaction order, then output order."""

        ids: List[InscriptionId] = []
        for transaction in block.transactions:
            ids.extend(self.inscription_ids_for_transaction(transaction))
        return ids

    def outputs_for_block(self, block: Block) -> List[OutputView]:
        """One view per output carrying inscriptions; empty outputs are skipped."""

        outputs: List[OutputView] = []
        for transaction in block.transactions:
            for vout, output in enumerate(transaction.outputs):
                inscriptions = self.inscriptions_on_output(OutPoint(txid=transaction.txid, vout=vout))
                if not inscriptions:
                    continue
                outputs.append(
                    OutputView(
                        inscriptions=inscriptions,
                        value=output.value,
                        script_pubkey=output.script_pubkey.hex(),
                        address=self.chain.address_from_script(output.script_pubkey),
                        transaction=transaction.txid,
                    )
                )
        logger.debug("Block %s carries %d inscribed outputs", block.hash, len(outputs))
        return outputs


__all__ = ["OutputOwnershipResolver", "OutputView"]
