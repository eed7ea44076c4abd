"""Chain parameters and best-effort address derivation from output scripts.

Address derivation covers the standard templates: P2PKH and P2SH through
Base58Check, and witness programs through bech32 (BIP173, version 0) or
bech32m (BIP350, version 1 and above). Any other script yields ``None`` so the
inscription view can omit the address rather than fail.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import List, Optional

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
BECH32M_CONST = 0x2BC830A3

OP_0 = 0x00
OP_1 = 0x51
OP_16 = 0x60
OP_DUP = 0x76
OP_HASH160 = 0xA9
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_CHECKSIG = 0xAC


class Chain(Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"

    @classmethod
    def parse(cls, value: str) -> "Chain":
        normalized = value.strip().lower()
        aliases = {"main": "mainnet", "bitcoin": "mainnet", "test": "testnet"}
        normalized = aliases.get(normalized, normalized)
        for chain in cls:
            if chain.value == normalized:
                return chain
        raise ValueError(f"Unknown chain: {value}")

    @property
    def bech32_hrp(self) -> str:
        return {
            Chain.MAINNET: "bc",
            Chain.TESTNET: "tb",
            Chain.SIGNET: "tb",
            Chain.REGTEST: "bcrt",
        }[self]

    @property
    def p2pkh_version(self) -> int:
        return 0x00 if self is Chain.MAINNET else 0x6F

    @property
    def p2sh_version(self) -> int:
        return 0x05 if self is Chain.MAINNET else 0xC4

    def address_from_script(self, script: bytes) -> Optional[str]:
        """Return the address encoding of ``script`` or ``None`` when it has none."""

        if (
            len(script) == 25
            and script[0] == OP_DUP
            and script[1] == OP_HASH160
            and script[2] == 20
            and script[23] == OP_EQUALVERIFY
            and script[24] == OP_CHECKSIG
        ):
            return base58_check_encode(script[3:23], bytes([self.p2pkh_version]))

        if len(script) == 23 and script[0] == OP_HASH160 and script[1] == 20 and script[22] == OP_EQUAL:
            return base58_check_encode(script[2:22], bytes([self.p2sh_version]))

        witness = _witness_program(script)
        if witness is not None:
            version, program = witness
            return bech32_encode(self.bech32_hrp, version, program)

        return None


def _witness_program(script: bytes) -> Optional[tuple[int, bytes]]:
    if len(script) < 4 or len(script) > 42:
        return None
    opcode = script[0]
    if opcode == OP_0:
        version = 0
    elif OP_1 <= opcode <= OP_16:
        version = opcode - OP_1 + 1
    else:
        return None
    push_length = script[1]
    if push_length < 2 or push_length > 40 or len(script) != push_length + 2:
        return None
    if version == 0 and push_length not in (20, 32):
        return None
    return version, script[2:]


def _double_sha256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def base58_check_encode(payload: bytes, version: bytes) -> str:
    """Encode bytes into a Base58Check string with the provided version byte."""

    data = version + payload
    address_bytes = data + _double_sha256(data)[:4]

    value = int.from_bytes(address_bytes, "big")
    output: List[str] = []
    while value > 0:
        value, remainder = divmod(value, 58)
        output.append(BASE58_ALPHABET[remainder])
    encoded = "".join(output[::-1])

    leading_zero_count = 0
    for byte in address_bytes:
        if byte == 0:
            leading_zero_count += 1
        else:
            break

    return BASE58_ALPHABET[0] * leading_zero_count + encoded


def bech32_polymod(values: list[int]) -> int:
    """Compute bech32 checksum polymod."""
    GEN = [0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3]
    chk = 1
    for value in values:
        b = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for i in range(5):
            chk ^= GEN[i] if ((b >> i) & 1) else 0
    return chk


def bech32_hrp_expand(hrp: str) -> list[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def bech32_create_checksum(hrp: str, data: list[int], spec: str) -> list[int]:
    values = bech32_hrp_expand(hrp) + data
    const = BECH32M_CONST if spec == "bech32m" else 1
    polymod = bech32_polymod(values + [0, 0, 0, 0, 0, 0]) ^ const
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def bech32_encode(hrp: str, witver: int, witprog: bytes) -> str:
    """Encode a segwit address using bech32 (v0) or bech32m (v1+).

    Reference:
        BIP173 (bech32): https://github.com/bitcoin/bips/blob/master/bip-0173.mediawiki
        BIP350 (bech32m): https://github.com/bitcoin/bips/blob/master/bip-0350.mediawiki
    """
    spec = "bech32m" if witver >= 1 else "bech32"
    combined = [witver] + _convertbits(witprog, 8, 5)
    checksum = bech32_create_checksum(hrp, combined, spec)
    return hrp + "1" + "".join(BECH32_CHARSET[d] for d in combined + checksum)


def _convertbits(data: bytes, frombits: int, tobits: int) -> list[int]:
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1

    for value in data:
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)

    if bits:
        ret.append((acc << (tobits - bits)) & maxv)
    return ret


__all__ = ["Chain", "base58_check_encode", "bech32_encode"]
