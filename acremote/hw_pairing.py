"""Pairing credentials derived from a 64-bit hardware device ID.

Domain-separated FNV-1a hashes of the ID give a 12-bit discriminator, a
valid setup passcode and a 16-byte PBKDF2 salt, from which the SPAKE2+
verifier is computed, so no per-unit factory data is needed.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from functools import lru_cache

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

FNV_BASIS = 2166136261
FNV_PRIME = 16777619

DISCRIMINATOR_SEED = 0xD15C0001
PASSCODE_SEED = 0xD15C0002
SALT_SEED = 0xD15C0003

ITERATIONS = 1000
SALT_LENGTH = 16
VERIFIER_LENGTH = 97
PASSCODE_MAX = 99999998

# Forbidden setup passcodes from the Matter specification.
FORBIDDEN_PASSCODES = (
    0,
    11111111,
    22222222,
    33333333,
    44444444,
    55555555,
    66666666,
    77777777,
    88888888,
    99999999,
    12345678,
    87654321,
)

_P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551
_WS_LENGTH = 40
_U32_MAX = 0xFFFFFFFF


def fnv1a32(data: bytes, seed: int = FNV_BASIS) -> int:
    """32-bit FNV-1a hash of ``data`` starting from ``seed``."""
    h = seed & _U32_MAX
    for byte in data:
        h = ((h ^ byte) * FNV_PRIME) & _U32_MAX
    return h


def make_passcode(h: int) -> int:
    """Map a hash to a passcode in [1, 99999998] that is not forbidden."""
    code = h % PASSCODE_MAX + 1
    if code in FORBIDDEN_PASSCODES:
        # No two forbidden values are adjacent, so one bump is enough.
        code = code % PASSCODE_MAX + 1
    return code


@lru_cache(maxsize=16)
def _verifier(passcode: int, salt: bytes, iterations: int) -> bytes:
    ws = hashlib.pbkdf2_hmac(
        "sha256", passcode.to_bytes(4, "little"), salt, iterations, 2 * _WS_LENGTH
    )
    w0 = int.from_bytes(ws[:_WS_LENGTH], "big") % _P256_ORDER
    w1 = int.from_bytes(ws[_WS_LENGTH:], "big") % _P256_ORDER
    point_l = (
        ec.derive_private_key(w1, ec.SECP256R1())
        .public_key()
        .public_bytes(
            serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
        )
    )
    return w0.to_bytes(32, "big") + point_l


def spake2p_verifier(passcode: int, salt: bytes, iterations: int = ITERATIONS) -> bytes:
    """Serialized SPAKE2+ verifier: w0 (32 bytes) followed by the point L (65 bytes)."""
    if not 0 <= passcode <= _U32_MAX:
        raise ValueError(f"passcode out of range: {passcode}")
    if iterations < 1:
        raise ValueError(f"iteration count must be positive: {iterations}")
    return _verifier(passcode, bytes(salt), iterations)


@dataclass(frozen=True)
class PairingCredentials:
    """Commissionable data for one device."""

    discriminator: int
    passcode: int
    salt: bytes
    iterations: int = ITERATIONS

    def verifier(self) -> bytes:
        """The serialized SPAKE2+ verifier, computed on first use."""
        return spake2p_verifier(self.passcode, self.salt, self.iterations)


def derive_credentials(id0: int, id1: int) -> PairingCredentials:
    """Derive credentials from the two 32-bit words of the hardware device ID."""
    for name, word in (("id0", id0), ("id1", id1)):
        if not 0 <= word <= _U32_MAX:
            raise ValueError(f"{name} is not a 32-bit value: {word}")
    raw = id0.to_bytes(4, "little") + id1.to_bytes(4, "little")

    discriminator = fnv1a32(raw, DISCRIMINATOR_SEED) & 0x0FFF
    passcode = make_passcode(fnv1a32(raw, PASSCODE_SEED))
    salt = b"".join(
        fnv1a32(raw, SALT_SEED + i).to_bytes(4, "little") for i in range(4)
    )
    return PairingCredentials(discriminator, passcode, salt)