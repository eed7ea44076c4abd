"""Inscription resolution and materialization.

This subpackage joins the confirmed inscription index, a rebuild-on-demand
mempool snapshot, and per-sat rarity into inscription views. Confirmed and
unconfirmed inscriptions are served by separate assemblers so callers always
know which fields they can rely on.
"""

from ordview.ordinals.assembler import (
    ConfirmedInscriptionAssembler,
    InscriptionAssembler,
    InscriptionView,
    LightInscriptionView,
    MempoolInscriptionAssembler,
)
from ordview.ordinals.index_store import InscriptionIndex, SQLiteInscriptionIndex
from ordview.ordinals.inscriptions import EnvelopeError, InscriptionExtractor, parse_envelopes
from ordview.ordinals.materializer import InscriptionMaterializer
from ordview.ordinals.mempool import MempoolIndex, MempoolSnapshot
from ordview.ordinals.ownership import OutputOwnershipResolver, OutputView
from ordview.ordinals.sat import Rarity, Sat, SatView, describe_sat

__all__ = [
    "ConfirmedInscriptionAssembler",
    "InscriptionAssembler",
    "InscriptionView",
    "LightInscriptionView",
    "MempoolInscriptionAssembler",
    "InscriptionIndex",
    "SQLiteInscriptionIndex",
    "EnvelopeError",
    "InscriptionExtractor",
    "parse_envelopes",
    "InscriptionMaterializer",
    "MempoolIndex",
    "MempoolSnapshot",
    "OutputOwnershipResolver",
    "OutputView",
    "Rarity",
    "Sat",
    "SatView",
    "describe_sat",
]
