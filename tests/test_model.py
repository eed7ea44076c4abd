from decimal import Decimal

import pytest

from ordview.model import (
    Inscription,
    InscriptionId,
    OutPoint,
    SatPoint,
    Transaction,
    TxOut,
    btc_to_sats,
)

TXID = "ab" * 32


def test_inscription_id_renders_and_parses() -> None:
    inscription_id = InscriptionId(TXID, 7)

    assert str(inscription_id) == f"{TXID}i7"
    assert InscriptionId.parse(f"{TXID.upper()}i7") == inscription_id


@pytest.mark.parametrize(
    "raw", ["", "deadbeefi0", f"{TXID}", f"{TXID}ix", f"{TXID}i-1", f"{TXID}i+1", f"{TXID}i 1", f"{'zz' * 32}i0"]
)
def test_inscription_id_rejects_malformed_text(raw: str) -> None:
    with pytest.raises(ValueError):
        InscriptionId.parse(raw)


def test_satpoint_round_trips_through_text() -> None:
    satpoint = SatPoint(OutPoint(TXID, 2), 1234)

    assert str(satpoint) == f"{TXID}:2:1234"
    assert SatPoint.parse(str(satpoint)) == satpoint
    with pytest.raises(ValueError):
        SatPoint.parse(f"{TXID}:x:1")


def test_btc_to_sats_avoids_float_rounding() -> None:
    assert btc_to_sats(0.1) == 10_000_000
    assert btc_to_sats("0.00000546") == 546
    assert btc_to_sats(Decimal("21")) == 2_100_000_000


def test_transaction_from_rpc_decodes_witness_and_outputs() -> None:
    tx_json = {
        "txid": TXID,
        "vin": [
            {"txid": "cd" * 32, "vout": 1, "txinwitness": ["00ff", "51"]},
            {"coinbase": "0101"},
        ],
        "vout": [
            {"n": 1, "value": 0.0001, "scriptPubKey": {"hex": "6a"}},
            {"n": 0, "value": 0.5, "scriptPubKey": {"hex": "0014" + "11" * 20}},
        ],
    }

    transaction = Transaction.from_rpc(tx_json)

    assert transaction.inputs[0].previous_output == OutPoint("cd" * 32, 1)
    assert transaction.inputs[0].witness == (b"\x00\xff", b"\x51")
    assert transaction.inputs[1].previous_output is None
    assert [output.value for output in transaction.outputs] == [50_000_000, 10_000]
    assert transaction.outputs[1].script_pubkey == b"\x6a"
    assert Transaction.from_dict(transaction.to_dict()) == transaction


def test_transaction_from_rpc_requires_txid() -> None:
    with pytest.raises(ValueError):
        Transaction.from_rpc({"vin": [], "vout": []})


def test_inscription_content_helpers() -> None:
    assert Inscription().content_length is None
    assert Inscription(body=b"").content_length == 0
    assert Inscription(content_type=b"text/plain").content_type_text == "text/plain"
    assert TxOut(1, b"\x6a").to_dict() == {"value": 1, "script_pubkey": "6a"}
