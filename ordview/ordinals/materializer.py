"""Materialize ordered collections of inscription views.

The materializer applies the confirmed assembler across a block (in full, as a
page, or as a bare count), across an inclusive range of inscription numbers,
and offers the single-inscription and latest-block lookups built on the same
primitives. Ordering is transaction order then output order within a block, and
numeric order within a range.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from ordview.errors import BadRequestError, NotFoundError
from ordview.model import Block, InscriptionId
from ordview.ordinals.assembler import ConfirmedInscriptionAssembler, InscriptionView
from ordview.ordinals.index_store import InscriptionIndex
from ordview.ordinals.ownership import OutputOwnershipResolver, OutputView

logger = logging.getLogger(__name__)

BlockRef = Union[int, str]
DIAGNOSTIC_ID_LIMIT = 100


class InscriptionMaterializer:
    def __init__(
        self,
        index: InscriptionIndex,
        assembler: ConfirmedInscriptionAssembler,
        resolver: Optional[OutputOwnershipResolver] = None,
    ) -> None:
        self.index = index
        self.assembler = assembler
        self.resolver = resolver or OutputOwnershipResolver(index, chain=assembler.chain)

    def _resolve_block(self, block_ref: BlockRef) -> Block:
        if isinstance(block_ref, int):
            block = self.index.get_block_by_height(block_ref)
        else:
            block = self.index.get_block_by_hash(block_ref)
        if block is None:
            raise NotFoundError(f"block {block_ref}")
        return block

    def _views(self, inscription_ids: List[InscriptionId]) -> List[InscriptionView]:
        return [self.assembler.assemble(inscription_id) for inscription_id in inscription_ids]

    # Single inscriptions ---------------------------------------------------

    def inscription_by_id(self, inscription_id: InscriptionId) -> InscriptionView:
        return self.assembler.assemble(inscription_id)

    def inscription_by_number(self, number: int) -> InscriptionView:
        inscription_id = self.index.get_inscription_id_by_number(number)
        if inscription_id is None:
            raise NotFoundError(f"inscription number {number}")
        return self.assembler.assemble(inscription_id)

    def latest_inscription(self) -> InscriptionView:
        latest = self.index.get_latest_inscriptions(1, None)
        if not latest:
            raise NotFoundError("latest inscription")
        return self.assembler.assemble(latest[0])

    # Ranges ----------------------------------------------------------------

    def inscriptions_in_range(self, start: int, end: int) -> List[InscriptionView]:
        """Views for numbers ``start..=end``; unnumbered slots are skipped."""

        if start > end:
            raise BadRequestError("range start greater than range end")
        inscription_ids: List[InscriptionId] = []
        for number in range(start, end + 1):
            inscription_id = self.index.get_inscription_id_by_number(number)
            if inscription_id is not None:
                inscription_ids.append(inscription_id)
        return self._views(inscription_ids)

    # Blocks ----------------------------------------------------------------

    def inscriptions_for_block(self, block_ref: BlockRef) -> List[InscriptionView]:
        block = self._resolve_block(block_ref)
        return self._views(self.resolver.inscription_ids_for_block(block))

    def paginated_inscriptions_for_block(self, block_ref: BlockRef, start: int, count: int) -> List[InscriptionView]:
        """Views for ``ids[start:start + count]`` of the block ordering.

        The window must lie inside the enumerated ids; anything else is a bad
        request rather than a short or empty page.
        """

        if start < 0 or count < 0:
            raise BadRequestError("pagination start and count must be non-negative")
        block = self._resolve_block(block_ref)
        inscription_ids = self.resolver.inscription_ids_for_block(block)
        end = start + count
        if start > len(inscription_ids) or end > len(inscription_ids):
            raise BadRequestError(
                f"page {start}..{end} is outside the {len(inscription_ids)} inscriptions in block {block_ref}"
            )
        return self._views(inscription_ids[start:end])

    def inscription_count_for_block(self, block_ref: BlockRef) -> int:
        block = self._resolve_block(block_ref)
        return len(self.resolver.inscription_ids_for_block(block))

    def outputs_for_block(self, block_ref: BlockRef) -> List[OutputView]:
        return self.resolver.outputs_for_block(self._resolve_block(block_ref))

    def inscription_ids_for_block(self, block_ref: BlockRef, limit: int = DIAGNOSTIC_ID_LIMIT) -> List[InscriptionId]:
        if limit < 0:
            raise BadRequestError("limit must be non-negative")
        block = self._resolve_block(block_ref)
        return self.resolver.inscription_ids_for_block(block)[:limit]

    def inscription_ids_by_transaction(
        self, block_ref: BlockRef, limit: int = DIAGNOSTIC_ID_LIMIT
    ) -> List[Dict[str, Any]]:
        """Group the first ``limit`` block inscription ids by genesis transaction."""

        grouped: Dict[str, List[InscriptionId]] = {}
        for inscription_id in self.inscription_ids_for_block(block_ref, limit=limit):
            grouped.setdefault(inscription_id.txid, []).append(inscription_id)
        return [
            {"transaction_id": txid, "inscription_ids": [str(i) for i in ids]}
            for txid, ids in grouped.items()
        ]

    def latest_block(self) -> Block:
        block_hash = self.index.get_latest_block_hash()
        if block_hash is None:
            raise NotFoundError("latest block")
        return self._resolve_block(block_hash)

    def latest_block_height(self) -> int:
        block_hash = self.index.get_latest_block_hash()
        height = self.index.get_block_height(block_hash) if block_hash is not None else None
        if height is None:
            raise NotFoundError(f"block {block_hash}")
        return height


__all__ = ["BlockRef", "InscriptionMaterializer"]
