"""Opaque ciphertext handle types.

A handle names a value held by the ciphertext engine. It never carries
the plaintext, and it refuses to be used as a truth value: there is no
way to write ``if is_high:`` against an encrypted boolean. Secret-
dependent choices must go through ``select``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class CipherKind(str, enum.Enum):
    """Encrypted value types supported by the engine."""
    EUINT64 = "euint64"
    EBOOL = "ebool"


@dataclass(frozen=True)
class Ciphertext:
    """Reference to an encrypted value inside the engine."""
    handle: str
    kind: CipherKind

    def __bool__(self) -> bool:
        raise TypeError(
            "Encrypted values cannot be used in a conditional; "
            "use select(cond, if_true, if_false)"
        )

    def __repr__(self) -> str:
        return f"Ciphertext({self.kind.value}:{self.handle[:12]})"


@dataclass(frozen=True)
class EncryptedInput:
    """A client-side encrypted value plus the proof binding it.

    The proof ties the external handle to one target contract and one
    submitting user. Importing it anywhere else fails.
    """
    handle: str
    proof: bytes
