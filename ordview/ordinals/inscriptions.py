"""Envelope parsing and inscription extraction.

An ord envelope lives in a Taproot script-path spend and looks like::

    OP_FALSE OP_IF "ord" <tag> <value> ... OP_0 <body chunk> ... OP_ENDIF

:func:`parse_envelopes` walks every input's tapscript in order and returns one
:class:`~ordview.model.Inscription` per envelope. The extractor turns that
ordered sequence into inscription identities for a transaction.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ordview.model import Inscription, InscriptionId, Transaction

logger = logging.getLogger(__name__)

PROTOCOL_ID = b"ord"
CONTENT_TYPE_TAG = b"\x01"
BODY_TAG = b""
TAPROOT_ANNEX_PREFIX = 0x50

OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_16 = 0x60
OP_IF = 0x63
OP_ENDIF = 0x68

# A script token is either pushed data (bytes) or a bare opcode (int).
Token = bytes | int
EnvelopeParser = Callable[[Transaction], Sequence[Inscription]]


class EnvelopeError(ValueError):
    """Raised when a tapscript cannot be tokenized."""


def _read_length(script: bytes, position: int, width: int) -> Tuple[int, int]:
    end = position + width
    if end > len(script):
        raise EnvelopeError("Truncated push length")
    return int.from_bytes(script[position:end], "little"), end


def iter_script_tokens(script: bytes) -> Iterator[Token]:
    """Yield pushes and opcodes from a raw script."""

    position = 0
    while position < len(script):
        opcode = script[position]
        position += 1

        if opcode <= 0x4B:
            length = opcode
        elif opcode == OP_PUSHDATA1:
            length, position = _read_length(script, position, 1)
        elif opcode == OP_PUSHDATA2:
            length, position = _read_length(script, position, 2)
        elif opcode == OP_PUSHDATA4:
            length, position = _read_length(script, position, 4)
        else:
            yield opcode
            continue

        end = position + length
        if end > len(script):
            raise EnvelopeError(f"Push of {length} bytes runs past the end of the script")
        yield script[position:end]
        position = end


def _as_push(token: Token) -> Optional[bytes]:
    if isinstance(token, bytes):
        return token
    if token == OP_1NEGATE:
        return b"\x81"
    if OP_1 <= token <= OP_16:
        return bytes([token - OP_1 + 1])
    return None


def _tapscript(witness: Sequence[bytes]) -> Optional[bytes]:
    items = list(witness)
    if len(items) >= 2 and items[-1] and items[-1][0] == TAPROOT_ANNEX_PREFIX:
        items = items[:-1]
    if len(items) < 2:
        return None
    return items[-2]


def _envelope_from_pushes(pushes: List[bytes]) -> Inscription:
    fields: Dict[bytes, bytes] = {}
    body: Optional[bytes] = None
    position = 0
    while position < len(pushes):
        tag = pushes[position]
        if tag == BODY_TAG:
            body = b"".join(pushes[position + 1 :])
            break
        if position + 1 >= len(pushes):
            break
        fields.setdefault(tag, pushes[position + 1])
        position += 2
    return Inscription(body=body, content_type=fields.get(CONTENT_TYPE_TAG))


def parse_script_envelopes(script: bytes) -> List[Inscription]:
    tokens = list(iter_script_tokens(script))
    envelopes: List[Inscription] = []
    position = 0
    while position + 2 < len(tokens):
        if not (
            tokens[position] == b""
            and tokens[position + 1] == OP_IF
            and tokens[position + 2] == PROTOCOL_ID
        ):
            position += 1
            continue

        pushes: List[bytes] = []
        cursor = position + 3
        closed = False
        while cursor < len(tokens):
            token = tokens[cursor]
            cursor += 1
            if token == OP_ENDIF:
                closed = True
                break
            push = _as_push(token)
            if push is None:
                break
            pushes.append(push)

        if closed:
            envelopes.append(_envelope_from_pushes(pushes))
        position = cursor
    return envelopes


def parse_envelopes(transaction: Transaction) -> List[Inscription]:
    """Return every envelope in ``transaction``: inputs in order, then script order."""

    envelopes: List[Inscription] = []
    for txin in transaction.inputs:
        script = _tapscript(txin.witness)
        if script is None:
            continue
        envelopes.extend(parse_script_envelopes(script))
    return envelopes


class InscriptionExtractor:
    """Derive inscription identities from a transaction's envelopes."""

    def __init__(self, envelope_parser: EnvelopeParser = parse_envelopes) -> None:
        self.envelope_parser = envelope_parser

    def extract(self, transaction: Transaction) -> List[Tuple[InscriptionId, Inscription]]:
        """Pair each envelope with ``InscriptionId(txid, i)``.

        ``i`` is the number of envelopes consumed before this one, so the first
        envelope is ``i0``. A parse failure yields an empty list.
        """

        try:
            envelopes = list(self.envelope_parser(transaction))
        except (EnvelopeError, ValueError) as exc:
            logger.debug("Envelope parsing failed for %s: %s", transaction.txid, exc)
            return []

        extracted: List[Tuple[InscriptionId, Inscription]] = []
        for index, envelope in enumerate(envelopes):
            extracted.append((InscriptionId(txid=transaction.txid, index=index), envelope))
        return extracted


__all__ = [
    "EnvelopeError",
    "InscriptionExtractor",
    "iter_script_tokens",
    "parse_envelopes",
    "parse_script_envelopes",
]
