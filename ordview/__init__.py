"""Inscription views over a confirmed index and a live mempool."""

from .chain import Chain
from .errors import BadRequestError, IndexLookupError, NotFoundError, UpstreamUnavailableError, ViewError
from .model import (
    Block,
    Inscription,
    InscriptionEntry,
    InscriptionId,
    OutPoint,
    SatPoint,
    Transaction,
    TxIn,
    TxOut,
)

__all__ = [
    "Chain",
    "BadRequestError",
    "IndexLookupError",
    "NotFoundError",
    "UpstreamUnavailableError",
    "ViewError",
    "Block",
    "Inscription",
    "InscriptionEntry",
    "InscriptionId",
    "OutPoint",
    "SatPoint",
    "Transaction",
    "TxIn",
    "TxOut",
]
