"""Decryption and usage grants keyed by (ciphertext handle, principal).

Grants are capabilities, not ambient rights: every new ciphertext starts
with no grants and each write path must issue its own. Transient grants
last for the current transaction only; the runtime clears them when the
outermost call returns or reverts.
"""

from __future__ import annotations

from typing import Iterable


class AccessControlList:
    """Capability map for ciphertext handles."""

    def __init__(self) -> None:
        self._persistent: set[tuple[str, str]] = set()
        self._transient: set[tuple[str, str]] = set()

    def allow(self, handle: str, principal: str) -> None:
        self._persistent.add((handle, principal))

    def allow_transient(self, handle: str, principal: str) -> None:
        self._transient.add((handle, principal))

    def is_allowed(self, handle: str, principal: str) -> bool:
        key = (handle, principal)
        return key in self._persistent or key in self._transient

    def is_allowed_persistent(self, handle: str, principal: str) -> bool:
        return (handle, principal) in self._persistent

    def clear_transient(self) -> None:
        self._transient.clear()

    @property
    def transient_count(self) -> int:
        return len(self._transient)

    def snapshot(self) -> tuple[frozenset, frozenset]:
        return frozenset(self._persistent), frozenset(self._transient)

    def restore(self, state: tuple[Iterable, Iterable]) -> None:
        persistent, transient = state
        self._persistent = set(persistent)
        self._transient = set(transient)
