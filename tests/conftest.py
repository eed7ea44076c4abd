from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from ordview.model import (
    Block,
    InscriptionEntry,
    InscriptionId,
    OutPoint,
    SatPoint,
    Transaction,
    TxIn,
    TxOut,
)
from ordview.ordinals.index_store import SQLiteInscriptionIndex
from ordview.ordinals.inscriptions import InscriptionExtractor
from ordview.rpc_client import RPCError

P2TR_SCRIPT = bytes.fromhex("512079be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798")
P2TR_ADDRESS = "bc1p0xlxvlhemja6c4dqv22uapctqupfhlxm9h8z3k2e72q4k9hcz7vqzk5jj0"
P2WPKH_SCRIPT = bytes.fromhex("0014751e76e8199196d454941c45d1b3a323f1433bd6")
P2WPKH_ADDRESS = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
P2PKH_SCRIPT = bytes.fromhex("76a914" + "00" * 20 + "88ac")
P2PKH_ADDRESS = "1111111111111111111114oLvT2"
OP_RETURN_SCRIPT = b"\x6a\x04test"

SIGNATURE = b"\x01" * 64
CONTROL_BLOCK = b"\xc0" + b"\x02" * 32
TAPROOT_KEY = b"\x03" * 32


def push(data: bytes) -> bytes:
    if len(data) <= 75:
        return bytes([len(data)]) + data
    if len(data) <= 0xFF:
        return b"\x4c" + bytes([len(data)]) + data
    return b"\x4d" + len(data).to_bytes(2, "little") + data


def envelope_script(content_type: Optional[bytes], *chunks: bytes) -> bytes:
    """Build ``OP_FALSE OP_IF "ord" [1 <content type>] [0 <chunks...>] OP_ENDIF``."""

    script = b"\x00\x63" + push(b"ord")
    if content_type is not None:
        script += push(b"\x01") + push(content_type)
    if chunks:
        script += b"\x00" + b"".join(push(chunk) for chunk in chunks)
    return script + b"\x68"


def tapscript(*envelopes: bytes) -> bytes:
    return push(TAPROOT_KEY) + b"\xac" + b"".join(envelopes)


def reveal_input(script: bytes, annex: Optional[bytes] = None) -> TxIn:
    witness = [SIGNATURE, script, CONTROL_BLOCK]
    if annex is not None:
        witness.append(annex)
    return TxIn(previous_output=OutPoint(txid="ff" * 32, vout=0), witness=tuple(witness))


def reveal_transaction(
    txid: str,
    scripts: Iterable[bytes],
    outputs: Sequence[TxOut] = (),
) -> Transaction:
    return Transaction(
        txid=txid,
        inputs=tuple(reveal_input(script) for script in scripts),
        outputs=tuple(outputs),
    )


class StubNode:
    """Answers the two node calls the pipeline makes."""

    def __init__(
        self,
        transactions: Optional[Dict[str, Transaction]] = None,
        pending: Optional[List[str]] = None,
        failing: Iterable[str] = (),
        list_error: Optional[Exception] = None,
    ) -> None:
        self.transactions = dict(transactions or {})
        self.pending = list(pending or [])
        self.failing = set(failing)
        self.list_error = list_error
        self.requested: List[str] = []

    def list_pending_transaction_ids(self) -> List[str]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.pending)

    def get_raw_transaction(self, txid: str) -> Transaction:
        self.requested.append(txid)
        if txid in self.failing or txid not in self.transactions:
            raise RPCError(-5, "No such mempool or blockchain transaction")
        return self.transactions[txid]


G1 = "11" * 32
G2 = "22" * 32
G3 = "33" * 32
BLOCK_100 = "aa" * 32
BLOCK_101 = "bb" * 32

TEXT = b"text/plain;charset=utf-8"


def populate(index: SQLiteInscriptionIndex) -> SimpleNamespace:
    """Load two blocks and four numbered inscriptions.

    Block 100 holds G1 (inscription x on G1:0). Block 101 holds G2 (y on
    G2:0) and G3, whose two inscriptions sit on swapped outputs: z0 on G3:1
    and z1 on G3:0.
    """

    g1 = reveal_transaction(
        G1,
        [tapscript(envelope_script(TEXT, b"hello"))],
        [TxOut(10_000, P2TR_SCRIPT)],
    )
    g2 = reveal_transaction(
        G2,
        [tapscript(envelope_script(b"image/png", b"\x89PNG", b"\r\n"))],
        [TxOut(546, P2WPKH_SCRIPT), TxOut(0, OP_RETURN_SCRIPT)],
    )
    g3 = reveal_transaction(
        G3,
        [tapscript(envelope_script(TEXT, b"first"), envelope_script(None))],
        [TxOut(600, P2PKH_SCRIPT), TxOut(700, P2TR_SCRIPT)],
    )
    index.add_block(Block(hash=BLOCK_100, height=100, transactions=(g1,)))
    index.add_block(Block(hash=BLOCK_101, height=101, transactions=(g2, g3)))

    extractor = InscriptionExtractor()
    extracted = {
        inscription_id: inscription
        for transaction in (g1, g2, g3)
        for inscription_id, inscription in extractor.extract(transaction)
    }

    x = InscriptionId(G1, 0)
    y = InscriptionId(G2, 0)
    z0 = InscriptionId(G3, 0)
    z1 = InscriptionId(G3, 1)
    placements = [
        (x, InscriptionEntry(0, 100, 500, 1_700_000_000, sat=50 * 100_000_000), SatPoint(OutPoint(G1, 0), 0)),
        (y, InscriptionEntry(1, 101, 700, 1_700_000_600), SatPoint(OutPoint(G2, 0), 0)),
        (z0, InscriptionEntry(2, 101, 900, 1_700_000_600, sat=1), SatPoint(OutPoint(G3, 1), 0)),
        (z1, InscriptionEntry(3, 101, 900, 1_700_000_600), SatPoint(OutPoint(G3, 0), 0)),
    ]
    for inscription_id, entry, satpoint in placements:
        index.add_inscription(inscription_id, entry, extracted[inscription_id], satpoint)

    return SimpleNamespace(index=index, g1=g1, g2=g2, g3=g3, x=x, y=y, z0=z0, z1=z1)


@pytest.fixture
def seeded() -> SimpleNamespace:
    index = SQLiteInscriptionIndex(":memory:")
    namespace = populate(index)
    yield namespace
    index.close()


@pytest.fixture
def seeded_path(tmp_path: Path) -> Path:
    path = tmp_path / "index.sqlite"
    index = SQLiteInscriptionIndex(path)
    populate(index)
    index.close()
    return path
