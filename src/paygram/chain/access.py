"""Role plumbing shared by the contracts: two-step ownership and a
reentrancy lock.

Ownership is an explicit role held in contract state, set at
construction and changed only through the owner-gated two-step
handover (propose, then accept by the proposed account).
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Optional, TypeVar

from paygram.chain.addresses import ZERO_ADDRESS, is_zero, to_address
from paygram.chain.runtime import Contract, Runtime, external
from paygram.errors import OwnableUnauthorizedAccount, ReentrancyGuardReentrantCall, ZeroAddress
from paygram.persistence.event_log import EventKind

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class Ownable2Step(Contract):
    """Contract with a single owner and two-step ownership transfer."""

    def __init__(self, runtime: Runtime, deployer: str, initial_owner: str) -> None:
        initial_owner = to_address(initial_owner)
        if is_zero(initial_owner):
            raise ZeroAddress("Initial owner cannot be the zero address")
        super().__init__(runtime, deployer)
        self._owner = initial_owner
        self._pending_owner: Optional[str] = None
        self._emit(
            EventKind.OWNERSHIP_TRANSFERRED,
            previous_owner=ZERO_ADDRESS,
            new_owner=initial_owner,
        )

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def pending_owner(self) -> Optional[str]:
        return self._pending_owner

    @external
    def transfer_ownership(self, new_owner: str, *, caller: str) -> None:
        """Propose a new owner. Passing the zero address cancels a proposal."""
        self._only_owner(caller)
        new_owner = to_address(new_owner)
        self._pending_owner = None if is_zero(new_owner) else new_owner
        self._emit(
            EventKind.OWNERSHIP_TRANSFER_STARTED,
            previous_owner=self._owner,
            new_owner=new_owner,
        )

    @external
    def accept_ownership(self, *, caller: str) -> None:
        if self._pending_owner is None or caller != self._pending_owner:
            raise OwnableUnauthorizedAccount(caller)
        previous = self._owner
        self._owner = caller
        self._pending_owner = None
        logger.info("Ownership of %s moved from %s to %s", self.address, previous, caller)
        self._emit(
            EventKind.OWNERSHIP_TRANSFERRED,
            previous_owner=previous,
            new_owner=caller,
        )

    def _only_owner(self, caller: str) -> None:
        if caller != self._owner:
            raise OwnableUnauthorizedAccount(caller)


def non_reentrant(func: F) -> F:
    """Reject calls into ``func`` while any guarded method of the same
    contract is executing. Apply beneath ``@external``."""

    @functools.wraps(func)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        if getattr(self, "_entered", False):
            raise ReentrancyGuardReentrantCall(
                f"Re-entrant call into {func.__name__} on {self.address}"
            )
        self._entered = True
        try:
            return func(self, *args, **kwargs)
        finally:
            self._entered = False

    return wrapper  # type: ignore[return-value]
