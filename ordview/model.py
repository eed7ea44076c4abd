"""Domain models for inscriptions, outputs, and the blocks that carry them.

The types below are shared by the confirmed index, the mempool snapshot, and
the view assembler. Node JSON (``getrawtransaction <txid> true``) is converted
here so the rest of the package only deals with sat-denominated integers and
raw script bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

COIN_VALUE = 100_000_000


def btc_to_sats(value: Any) -> int:
    """Convert a node-reported BTC amount into an integer number of sats."""

    return int((Decimal(str(value)) * COIN_VALUE).to_integral_value())


@dataclass(frozen=True, order=True)
class InscriptionId:
    """Identity of an inscription: originating txid plus envelope index."""

    txid: str
    index: int = 0

    def __str__(self) -> str:
        return f"{self.txid}i{self.index}"

    @classmethod
    def parse(cls, text: str) -> "InscriptionId":
        txid, sep, index = text.strip().rpartition("i")
        if not sep or len(txid) != 64 or not index.isdigit():
            raise ValueError(f"Invalid inscription id: {text}")
        try:
            bytes.fromhex(txid)
            return cls(txid=txid.lower(), index=int(index))
        except ValueError as exc:
            raise ValueError(f"Invalid inscription id: {text}") from exc


@dataclass(frozen=True, order=True)
class OutPoint:
    txid: str
    vout: int

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"

    @classmethod
    def parse(cls, text: str) -> "OutPoint":
        txid, sep, vout = text.strip().rpartition(":")
        if not sep or not txid:
            raise ValueError(f"Invalid outpoint: {text}")
        try:
            return cls(txid=txid, vout=int(vout))
        except ValueError as exc:
            raise ValueError(f"Invalid outpoint: {text}") from exc


@dataclass(frozen=True, order=True)
class SatPoint:
    """Output and intra-output offset currently holding a sat lineage."""

    outpoint: OutPoint
    offset: int

    def __str__(self) -> str:
        return f"{self.outpoint}:{self.offset}"

    @classmethod
    def parse(cls, text: str) -> "SatPoint":
        outpoint, sep, offset = text.strip().rpartition(":")
        if not sep:
            raise ValueError(f"Invalid satpoint: {text}")
        try:
            return cls(outpoint=OutPoint.parse(outpoint), offset=int(offset))
        except ValueError as exc:
            raise ValueError(f"Invalid satpoint: {text}") from exc


@dataclass(frozen=True)
class TxIn:
    previous_output: Optional[OutPoint]
    witness: Tuple[bytes, ...] = ()


@dataclass(frozen=True)
class TxOut:
    value: int
    script_pubkey: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "script_pubkey": self.script_pubkey.hex()}


@dataclass(frozen=True)
class Transaction:
    txid: str
    inputs: Tuple[TxIn, ...] = ()
    outputs: Tuple[TxOut, ...] = ()

    @classmethod
    def from_rpc(cls, tx_json: Dict[str, Any]) -> "Transaction":
        """Build a transaction from a node's verbose transaction JSON."""

        txid = tx_json.get("txid") or tx_json.get("hash")
        if not txid:
            raise ValueError("Transaction JSON is missing a txid")

        inputs = []
        for vin in tx_json.get("vin", []) or []:
            previous = None
            if vin.get("txid") is not None:
                previous = OutPoint(txid=vin["txid"], vout=int(vin.get("vout", 0)))
            witness = tuple(bytes.fromhex(item) for item in vin.get("txinwitness") or [])
            inputs.append(TxIn(previous_output=previous, witness=witness))

        outputs = []
        for vout in sorted(tx_json.get("vout", []) or [], key=lambda v: v.get("n", 0)):
            script_pub_key = vout.get("scriptPubKey") or {}
            outputs.append(
                TxOut(
                    value=btc_to_sats(vout.get("value", 0)),
                    script_pubkey=bytes.fromhex(script_pub_key.get("hex") or ""),
                )
            )

        return cls(txid=txid, inputs=tuple(inputs), outputs=tuple(outputs))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txid": self.txid,
            "inputs": [
                {
                    "previous_output": str(txin.previous_output) if txin.previous_output else None,
                    "witness": [item.hex() for item in txin.witness],
                }
                for txin in self.inputs
            ],
            "outputs": [output.to_dict() for output in self.outputs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        inputs = tuple(
            TxIn(
                previous_output=OutPoint.parse(item["previous_output"])
                if item.get("previous_output")
                else None,
                witness=tuple(bytes.fromhex(w) for w in item.get("witness", [])),
            )
            for item in data.get("inputs", [])
        )
        outputs = tuple(
            TxOut(value=int(item["value"]), script_pubkey=bytes.fromhex(item["script_pubkey"]))
            for item in data.get("outputs", [])
        )
        return cls(txid=data["txid"], inputs=inputs, outputs=outputs)


@dataclass(frozen=True)
class Block:
    hash: str
    height: Optional[int]
    transactions: Tuple[Transaction, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InscriptionEntry:
    """Confirmed-index metadata for one inscription."""

    number: int
    height: int
    fee: int
    timestamp: int
    sat: Optional[int] = None


@dataclass(frozen=True)
class Inscription:
    """Payload carried by a single envelope."""

    body: Optional[bytes] = None
    content_type: Optional[bytes] = None

    @property
    def content_length(self) -> Optional[int]:
        return len(self.body) if self.body is not None else None

    @property
    def content_type_text(self) -> Optional[str]:
        if self.content_type is None:
            return None
        return self.content_type.decode("utf-8", errors="replace")
