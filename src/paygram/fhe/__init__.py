"""Ciphertext engine — opaque encrypted values, oblivious primitives, grants."""

from paygram.fhe.acl import AccessControlList
from paygram.fhe.engine import CiphertextEngine, FHEContext, UINT64_MASK
from paygram.fhe.types import CipherKind, Ciphertext, EncryptedInput

__all__ = [
    "AccessControlList",
    "CipherKind",
    "Ciphertext",
    "CiphertextEngine",
    "EncryptedInput",
    "FHEContext",
    "UINT64_MASK",
]
