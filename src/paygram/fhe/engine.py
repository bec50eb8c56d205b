"""In-process ciphertext engine — the encrypted-arithmetic coprocessor.

The engine keeps every plaintext in a private store and hands out opaque
handles. Contracts compute on handles through a principal-bound
``FHEContext``; the engine checks that the computing principal holds a
grant on every operand and grants each result transiently back to it.

Semantics follow the euint64 / ebool model:
- Unsigned 64-bit integers, arithmetic wraps modulo 2**64.
- Comparisons produce encrypted booleans.
- ``select(cond, a, b)`` is the only way to combine values on a secret
  condition. There is no branch and no plaintext leaves the engine.

Off-chain decryption (``user_decrypt``) is the only read path and
requires a permanent grant for the requesting principal.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Any, Optional, Union

from paygram.errors import (
    CiphertextAccessDenied,
    CoprocessorUnavailable,
    InvalidInputProof,
    UnknownCiphertext,
)
from paygram.fhe.acl import AccessControlList
from paygram.fhe.types import CipherKind, Ciphertext, EncryptedInput

UINT64_MASK = (1 << 64) - 1

Operand = Union[Ciphertext, int]


class CiphertextEngine:
    """Opaque encrypted-integer store with oblivious primitives.

    Usage:
        engine = CiphertextEngine()
        fhe = engine.bind(contract_address)
        a = fhe.encrypt(40)
        b = fhe.ge(a, 75)            # encrypted False
        c = fhe.select(b, a, fhe.encrypt(0))
    """

    def __init__(self, secret: Optional[bytes] = None) -> None:
        self._secret = secret or secrets.token_bytes(32)
        self._values: dict[str, int] = {}
        self._kinds: dict[str, CipherKind] = {}
        self._inputs: dict[str, tuple[int, CipherKind]] = {}
        self._counter = 0
        self.acl = AccessControlList()
        self.available = True

    def bind(self, principal: str) -> FHEContext:
        """Return an operation context acting as ``principal``."""
        return FHEContext(self, principal)

    # ------------------------------------------------------------------
    # Client-side inputs
    # ------------------------------------------------------------------

    def encrypt_input(
        self,
        value: int,
        contract: str,
        user: str,
        kind: CipherKind = CipherKind.EUINT64,
    ) -> EncryptedInput:
        """Encrypt a value client-side for submission to one contract.

        Client encryption uses the network public key only, so it works
        while the coprocessor is offline.
        """
        handle = self._new_handle("input")
        self._inputs[handle] = (self._coerce(value, kind), kind)
        return EncryptedInput(handle=handle, proof=self._proof(handle, contract, user))

    def import_with_proof(
        self,
        external_handle: str,
        proof: bytes,
        *,
        contract: str,
        user: str,
    ) -> Ciphertext:
        """Validate a proof-bound input and import it as a ciphertext.

        The imported ciphertext is granted transiently to ``contract``.
        """
        self._require_available()
        expected = self._proof(external_handle, contract, user)
        if external_handle not in self._inputs or not hmac.compare_digest(proof, expected):
            raise InvalidInputProof(
                f"Input proof rejected for handle {external_handle[:12]} "
                f"(contract {contract}, user {user})"
            )
        value, kind = self._inputs[external_handle]
        return self._store(value, kind, contract)

    # ------------------------------------------------------------------
    # Oblivious primitives (principal-checked)
    # ------------------------------------------------------------------

    def trivial_encrypt(
        self,
        value: int,
        kind: CipherKind = CipherKind.EUINT64,
        *,
        principal: str,
    ) -> Ciphertext:
        self._require_available()
        return self._store(self._coerce(value, kind), kind, principal)

    def ge(self, a: Operand, b: Operand, *, principal: str) -> Ciphertext:
        x, y = self._operand(a, principal), self._operand(b, principal)
        return self._store(int(x >= y), CipherKind.EBOOL, principal)

    def lt(self, a: Operand, b: Operand, *, principal: str) -> Ciphertext:
        x, y = self._operand(a, principal), self._operand(b, principal)
        return self._store(int(x < y), CipherKind.EBOOL, principal)

    def le(self, a: Operand, b: Operand, *, principal: str) -> Ciphertext:
        x, y = self._operand(a, principal), self._operand(b, principal)
        return self._store(int(x <= y), CipherKind.EBOOL, principal)

    def add(self, a: Operand, b: Operand, *, principal: str) -> Ciphertext:
        x, y = self._operand(a, principal), self._operand(b, principal)
        return self._store((x + y) & UINT64_MASK, CipherKind.EUINT64, principal)

    def sub(self, a: Operand, b: Operand, *, principal: str) -> Ciphertext:
        x, y = self._operand(a, principal), self._operand(b, principal)
        return self._store((x - y) & UINT64_MASK, CipherKind.EUINT64, principal)

    def select(
        self,
        cond: Ciphertext,
        if_true: Ciphertext,
        if_false: Ciphertext,
        *,
        principal: str,
    ) -> Ciphertext:
        """Oblivious ternary: both branches are always evaluated."""
        if cond.kind != CipherKind.EBOOL:
            raise TypeError(f"select condition must be ebool, got {cond.kind.value}")
        if if_true.kind != if_false.kind:
            raise TypeError(
                f"select branches differ in kind: "
                f"{if_true.kind.value} vs {if_false.kind.value}"
            )
        c = self._operand(cond, principal)
        t = self._operand(if_true, principal)
        f = self._operand(if_false, principal)
        return self._store(t if c else f, if_true.kind, principal)

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def grant_permanent(self, ct: Ciphertext, grantee: str, *, principal: str) -> None:
        """Let ``grantee`` use and decrypt ``ct``. Granter needs access itself."""
        self._require_access(ct, principal)
        self.acl.allow(ct.handle, grantee)

    def grant_transient(self, ct: Ciphertext, grantee: str, *, principal: str) -> None:
        """Let ``grantee`` use ``ct`` until the current transaction ends."""
        self._require_access(ct, principal)
        self.acl.allow_transient(ct.handle, grantee)

    def is_allowed(self, ct: Ciphertext, principal: str) -> bool:
        return self.acl.is_allowed(ct.handle, principal)

    def end_transaction(self) -> None:
        self.acl.clear_transient()

    # ------------------------------------------------------------------
    # Off-chain decryption
    # ------------------------------------------------------------------

    def user_decrypt(self, ct: Ciphertext, principal: str) -> Union[int, bool]:
        """Decrypt for a principal holding a permanent grant."""
        self._require_available()
        if ct.handle not in self._values:
            raise UnknownCiphertext(f"Unknown ciphertext handle: {ct.handle[:12]}")
        if not self.acl.is_allowed_persistent(ct.handle, principal):
            raise CiphertextAccessDenied(
                f"{principal} holds no decryption grant on {ct.handle[:12]}"
            )
        value = self._values[ct.handle]
        return bool(value) if ct.kind == CipherKind.EBOOL else value

    # ------------------------------------------------------------------
    # Transaction support
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        return {
            "values": dict(self._values),
            "kinds": dict(self._kinds),
            "inputs": dict(self._inputs),
            "counter": self._counter,
            "acl": self.acl.snapshot(),
        }

    def restore(self, state: dict[str, Any]) -> None:
        self._values = dict(state["values"])
        self._kinds = dict(state["kinds"])
        self._inputs = dict(state["inputs"])
        self._counter = state["counter"]
        self.acl.restore(state["acl"])

    @property
    def ciphertext_count(self) -> int:
        return len(self._values)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_available(self) -> None:
        if not self.available:
            raise CoprocessorUnavailable("Ciphertext coprocessor is unavailable")

    def _require_access(self, ct: Ciphertext, principal: str) -> None:
        if ct.handle not in self._values:
            raise UnknownCiphertext(f"Unknown ciphertext handle: {ct.handle[:12]}")
        if not self.acl.is_allowed(ct.handle, principal):
            raise CiphertextAccessDenied(
                f"{principal} may not use ciphertext {ct.handle[:12]}"
            )

    def _operand(self, value: Operand, principal: str) -> int:
        self._require_available()
        if isinstance(value, Ciphertext):
            self._require_access(value, principal)
            return self._values[value.handle]
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Scalar operand must be an int, got {type(value).__name__}")
        return value & UINT64_MASK

    def _store(self, value: int, kind: CipherKind, principal: str) -> Ciphertext:
        handle = self._new_handle(kind.value)
        self._values[handle] = value
        self._kinds[handle] = kind
        self.acl.allow_transient(handle, principal)
        return Ciphertext(handle=handle, kind=kind)

    def _new_handle(self, tag: str) -> str:
        self._counter += 1
        digest = hashlib.sha256(f"{tag}:{self._counter}".encode("utf-8")).hexdigest()
        return f"0x{digest}"

    def _proof(self, handle: str, contract: str, user: str) -> bytes:
        message = f"{handle}|{contract.lower()}|{user.lower()}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).digest()

    @staticmethod
    def _coerce(value: int, kind: CipherKind) -> int:
        if kind == CipherKind.EBOOL:
            return int(bool(value))
        if value < 0 or value > UINT64_MASK:
            raise ValueError(f"Value out of euint64 range: {value}")
        return value


class FHEContext:
    """The engine as seen by one principal (usually a contract address)."""

    def __init__(self, engine: CiphertextEngine, principal: str) -> None:
        self._engine = engine
        self.principal = principal

    def encrypt(self, value: int, kind: CipherKind = CipherKind.EUINT64) -> Ciphertext:
        return self._engine.trivial_encrypt(value, kind, principal=self.principal)

    def from_external(self, external_handle: str, proof: bytes, user: str) -> Ciphertext:
        return self._engine.import_with_proof(
            external_handle, proof, contract=self.principal, user=user
        )

    def ge(self, a: Operand, b: Operand) -> Ciphertext:
        return self._engine.ge(a, b, principal=self.principal)

    def lt(self, a: Operand, b: Operand) -> Ciphertext:
        return self._engine.lt(a, b, principal=self.principal)

    def le(self, a: Operand, b: Operand) -> Ciphertext:
        return self._engine.le(a, b, principal=self.principal)

    def add(self, a: Operand, b: Operand) -> Ciphertext:
        return self._engine.add(a, b, principal=self.principal)

    def sub(self, a: Operand, b: Operand) -> Ciphertext:
        return self._engine.sub(a, b, principal=self.principal)

    def select(self, cond: Ciphertext, if_true: Ciphertext, if_false: Ciphertext) -> Ciphertext:
        return self._engine.select(cond, if_true, if_false, principal=self.principal)

    def allow(self, ct: Ciphertext, grantee: str) -> None:
        self._engine.grant_permanent(ct, grantee, principal=self.principal)

    def allow_this(self, ct: Ciphertext) -> None:
        self._engine.grant_permanent(ct, self.principal, principal=self.principal)

    def allow_transient(self, ct: Ciphertext, grantee: str) -> None:
        self._engine.grant_transient(ct, grantee, principal=self.principal)

    def is_allowed(self, ct: Ciphertext, principal: str) -> bool:
        return self._engine.is_allowed(ct, principal)
