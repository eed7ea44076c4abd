from typing import Optional

import pytest

from ordview.chain import Chain
from ordview.errors import IndexLookupError, NotFoundError
from ordview.model import InscriptionEntry, InscriptionId, OutPoint, SatPoint, Transaction, TxOut
from ordview.ordinals.assembler import ConfirmedInscriptionAssembler
from ordview.ordinals.index_store import SQLiteInscriptionIndex
from ordview.ordinals.inscriptions import parse_envelopes
from ordview.ordinals.sat import describe_sat
from ordview.rpc_client import RPCTransportError

from conftest import (
    G1,
    P2PKH_ADDRESS,
    P2TR_ADDRESS,
    P2TR_SCRIPT,
    P2WPKH_ADDRESS,
    P2WPKH_SCRIPT,
    StubNode,
    envelope_script,
    populate,
    reveal_transaction,
    tapscript,
)

MOVED = "44" * 32
GENESIS = "55" * 32


class FlakyIndex(SQLiteInscriptionIndex):
    """SQLite index whose number and transaction lookups can be made to fail."""

    def __init__(self) -> None:
        super().__init__(":memory:")
        self.failing_numbers: set = set()
        self.failing_txids: set = set()

    def get_inscription_id_by_number(self, number: int) -> Optional[InscriptionId]:
        if number in self.failing_numbers:
            raise IndexLookupError(f"number {number} unreadable")
        return super().get_inscription_id_by_number(number)

    def get_transaction(self, txid: str) -> Optional[Transaction]:
        if txid in self.failing_txids:
            raise IndexLookupError(f"transaction {txid} unreadable")
        return super().get_transaction(txid)


def _add_transferred(index: SQLiteInscriptionIndex, vout: int = 0) -> InscriptionId:
    """Inscription number 4 whose current location is a transaction the index does not hold."""

    genesis = reveal_transaction(GENESIS, [tapscript(envelope_script(b"text/plain", b"moved"))], [TxOut(546, P2WPKH_SCRIPT)])
    index.add_transaction(genesis)
    inscription_id = InscriptionId(GENESIS, 0)
    (inscription,) = parse_envelopes(genesis)
    index.add_inscription(
        inscription_id,
        InscriptionEntry(number=4, height=102, fee=1_000, timestamp=1_700_001_200),
        inscription,
        SatPoint(OutPoint(MOVED, vout), 0),
    )
    return inscription_id


def test_full_view_joins_entry_location_output_and_sat(seeded) -> None:
    assembler = ConfirmedInscriptionAssembler(seeded.index)

    view = assembler.assemble(seeded.x)

    assert view.inscription_id == seeded.x
    assert view.number == 0
    assert view.genesis_height == 100
    assert view.genesis_fee == 500
    assert view.timestamp == 1_700_000_000
    assert view.transaction == G1
    assert view.location == f"{G1}:0:0"
    assert view.satpoint == SatPoint(OutPoint(G1, 0), 0)
    assert view.offset == 0
    assert view.output == TxOut(10_000, P2TR_SCRIPT)
    assert view.output_value == 10_000
    assert view.address == P2TR_ADDRESS
    assert view.original_owner == P2TR_ADDRESS
    assert view.content_len == 5
    assert view.content_type == "text/plain;charset=utf-8"
    assert view.chain is Chain.MAINNET
    assert view.sat == describe_sat(50 * 100_000_000)
    assert view.sat.rarity == "uncommon"


def test_first_inscription_has_no_previous(seeded) -> None:
    view = ConfirmedInscriptionAssembler(seeded.index).assemble(seeded.x)

    assert view.previous is None
    assert view.next == seeded.y


def test_last_inscription_has_no_next(seeded) -> None:
    view = ConfirmedInscriptionAssembler(seeded.index).assemble(seeded.z1)

    assert view.previous == seeded.z0
    assert view.next is None
    assert view.sat is None
    assert view.content_len is None
    assert view.content_type is None


def test_to_dict_serializes_every_field(seeded) -> None:
    payload = ConfirmedInscriptionAssembler(seeded.index).assemble(seeded.y).to_dict()

    assert payload["inscription_id"] == str(seeded.y)
    assert payload["address"] == P2WPKH_ADDRESS
    assert payload["output"] == {"value": 546, "script_pubkey": P2WPKH_SCRIPT.hex()}
    assert payload["previous"] == str(seeded.x)
    assert payload["next"] == str(seeded.z0)
    assert payload["sat"] is None
    assert payload["chain"] == "mainnet"
    assert set(payload) == {
        "inscription_id",
        "address",
        "output_value",
        "sat",
        "content_len",
        "genesis_height",
        "genesis_fee",
        "timestamp",
        "transaction",
        "location",
        "output",
        "offset",
        "chain",
        "content_type",
        "next",
        "number",
        "previous",
        "satpoint",
        "original_owner",
    }


def test_original_owner_key_selects_genesis_output(seeded) -> None:
    by_vout = ConfirmedInscriptionAssembler(seeded.index).assemble(seeded.z0)
    by_offset = ConfirmedInscriptionAssembler(seeded.index, original_owner_key="offset").assemble(seeded.z0)

    assert by_vout.address == P2TR_ADDRESS
    assert by_vout.original_owner == P2TR_ADDRESS
    assert by_offset.original_owner == P2PKH_ADDRESS


def test_unknown_original_owner_key_is_rejected(seeded) -> None:
    with pytest.raises(ValueError):
        ConfirmedInscriptionAssembler(seeded.index, original_owner_key="input")


def test_unknown_inscription_is_not_found(seeded) -> None:
    with pytest.raises(NotFoundError):
        ConfirmedInscriptionAssembler(seeded.index).assemble(InscriptionId("99" * 32, 0))


def test_custom_sat_info_and_chain(seeded) -> None:
    calls = []

    def sat_info(number: int):
        calls.append(number)
        return describe_sat(number)

    view = ConfirmedInscriptionAssembler(seeded.index, chain=Chain.REGTEST, sat_info=sat_info).assemble(seeded.z0)

    assert calls == [1]
    assert view.address.startswith("bcrt1p")
    assert view.to_dict()["chain"] == "regtest"


def test_missing_current_transaction_falls_back_to_node() -> None:
    index = SQLiteInscriptionIndex(":memory:")
    populate(index)
    inscription_id = _add_transferred(index)
    node = StubNode(transactions={MOVED: Transaction(txid=MOVED, outputs=(TxOut(9_000, P2TR_SCRIPT),))})

    view = ConfirmedInscriptionAssembler(index, rpc=node).assemble(inscription_id)

    assert node.requested == [MOVED]
    assert view.output_value == 9_000
    assert view.address == P2TR_ADDRESS
    assert view.original_owner == P2WPKH_ADDRESS
    assert view.previous == InscriptionId("33" * 32, 1)
    assert view.next is None


def test_node_failure_leaves_output_absent() -> None:
    index = SQLiteInscriptionIndex(":memory:")
    inscription_id = _add_transferred(index)
    node = StubNode(failing=[MOVED])

    view = ConfirmedInscriptionAssembler(index, rpc=node).assemble(inscription_id)

    assert view.output is None
    assert view.output_value is None
    assert view.address is None
    assert view.location == f"{MOVED}:0:0"


def test_without_node_output_is_absent() -> None:
    index = SQLiteInscriptionIndex(":memory:")
    inscription_id = _add_transferred(index)

    view = ConfirmedInscriptionAssembler(index).assemble(inscription_id)

    assert view.output is None
    assert view.address is None
    assert view.original_owner == P2WPKH_ADDRESS


def test_transport_errors_from_node_leave_output_absent() -> None:
    class DownNode:
        def get_raw_transaction(self, txid: str) -> Transaction:
            raise RPCTransportError("connection refused")

    index = SQLiteInscriptionIndex(":memory:")
    inscription_id = _add_transferred(index)

    assert ConfirmedInscriptionAssembler(index, rpc=DownNode()).assemble(inscription_id).output is None


def test_output_index_beyond_transaction_is_not_found() -> None:
    index = SQLiteInscriptionIndex(":memory:")
    inscription_id = _add_transferred(index, vout=5)
    node = StubNode(transactions={MOVED: Transaction(txid=MOVED, outputs=(TxOut(9_000, P2TR_SCRIPT),))})

    with pytest.raises(NotFoundError):
        ConfirmedInscriptionAssembler(index, rpc=node).assemble(inscription_id)


def test_index_lookup_failure_for_current_transaction_uses_node() -> None:
    index = FlakyIndex()
    inscription_id = _add_transferred(index)
    index.failing_txids.add(MOVED)
    node = StubNode(transactions={MOVED: Transaction(txid=MOVED, outputs=(TxOut(9_000, P2TR_SCRIPT),))})

    view = ConfirmedInscriptionAssembler(index, rpc=node).assemble(inscription_id)

    assert view.output_value == 9_000


def test_previous_lookup_failure_is_treated_as_absent() -> None:
    index = FlakyIndex()
    namespace = populate(index)
    index.failing_numbers.add(1)

    view = ConfirmedInscriptionAssembler(index).assemble(namespace.z0)

    assert view.previous is None
    assert view.next == namespace.z1


def test_genesis_lookup_failure_propagates() -> None:
    index = FlakyIndex()
    namespace = populate(index)
    index.failing_txids.add(G1)

    with pytest.raises(IndexLookupError):
        ConfirmedInscriptionAssembler(index).assemble(namespace.x)
