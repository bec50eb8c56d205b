"""Confidential token (cPAY) — encrypted balances with confidential transfers.

Balances are euint64 ciphertexts. Minted amounts are public (mint takes a
plaintext amount); transferred amounts never are. A transfer that
exceeds the sender's balance does not revert: the balance check runs
under encryption and an encrypted zero moves instead, so the outcome of
the check is not observable.

Minting is limited to the owner and the linked payroll core.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from paygram.chain.access import Ownable2Step
from paygram.chain.addresses import is_zero, to_address
from paygram.chain.runtime import Runtime, external
from paygram.errors import (
    CiphertextAccessDenied,
    InvalidInputProof,
    Unauthorized,
    ZeroAddress,
)
from paygram.fhe.types import Ciphertext
from paygram.persistence.event_log import EventKind

logger = logging.getLogger(__name__)


class ConfidentialToken(Ownable2Step):
    """Encrypted-balance token used to settle payroll."""

    NAME = "Confidential PayGram"
    SYMBOL = "cPAY"

    def __init__(
        self,
        runtime: Runtime,
        deployer: str,
        initial_owner: str,
        initial_supply: int = 0,
    ) -> None:
        super().__init__(runtime, deployer, initial_owner)
        self._balances: dict[str, Ciphertext] = {}
        self._payroll_core: Optional[str] = None
        self._total_minted = 0
        if initial_supply > 0:
            self._mint(self.owner, initial_supply)

    @property
    def payroll_core(self) -> Optional[str]:
        return self._payroll_core

    @property
    def total_minted(self) -> int:
        return self._total_minted

    @property
    def total_supply(self) -> int:
        """Public supply. Transfers conserve it; only mint changes it."""
        return self._total_minted

    def confidential_balance_of(self, account: str) -> Optional[Ciphertext]:
        """Balance handle, or None for an account that never held tokens."""
        return self._balances.get(to_address(account))

    @external
    def set_payroll_core(self, core: str, *, caller: str) -> None:
        self._only_owner(caller)
        core = to_address(core)
        if is_zero(core):
            raise ZeroAddress("Payroll core cannot be the zero address")
        self._payroll_core = core
        self._emit(EventKind.PAYROLL_CORE_UPDATED, payroll_core=core)

    @external
    def mint(self, to: str, amount: int, *, caller: str) -> Ciphertext:
        if caller != self.owner and caller != self._payroll_core:
            raise Unauthorized(f"{caller} may not mint {self.SYMBOL}")
        return self._mint(to_address(to), amount)

    @external
    def confidential_transfer(
        self,
        to: str,
        amount: Union[Ciphertext, str],
        *,
        caller: str,
        proof: Optional[bytes] = None,
    ) -> Ciphertext:
        """Move an encrypted amount from ``caller`` to ``to``.

        ``amount`` is either a ciphertext the caller may use (and has
        granted transiently to this token) or, with ``proof``, an
        external handle from a client-side encrypted input.

        Returns the handle of the amount actually moved.
        """
        to = to_address(to)
        if is_zero(to):
            raise ZeroAddress("Cannot transfer to the zero address")
        fhe = self.fhe
        if proof is not None:
            amount = fhe.from_external(amount, proof, user=caller)
        elif isinstance(amount, str):
            raise InvalidInputProof(f"External handle {amount[:12]} needs an input proof")
        elif not fhe.is_allowed(amount, caller):
            raise CiphertextAccessDenied(
                f"{caller} may not transfer ciphertext {amount.handle[:12]}"
            )
        return self._transfer(caller, to, amount)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mint(self, to: str, amount: int) -> Ciphertext:
        if is_zero(to):
            raise ZeroAddress("Cannot mint to the zero address")
        fhe = self.fhe
        minted = fhe.encrypt(amount)
        self._credit(to, minted)
        self._total_minted += amount
        logger.info("Minted %s to %s", self.SYMBOL, to)
        self._emit(EventKind.TOKENS_MINTED, to=to, amount=amount)
        return minted

    def _transfer(self, sender: str, to: str, amount: Ciphertext) -> Ciphertext:
        fhe = self.fhe
        balance = self._balances.get(sender)
        if balance is None:
            balance = fhe.encrypt(0)
        sufficient = fhe.le(amount, balance)
        moved = fhe.select(sufficient, amount, fhe.encrypt(0))

        new_balance = fhe.sub(balance, moved)
        fhe.allow_this(new_balance)
        fhe.allow(new_balance, sender)
        self._balances[sender] = new_balance
        self._credit(to, moved)

        fhe.allow_this(moved)
        fhe.allow(moved, sender)
        fhe.allow(moved, to)
        self._emit(
            EventKind.CONFIDENTIAL_TRANSFER,
            sender=sender,
            to=to,
            amount_handle=moved.handle,
        )
        return moved

    def _credit(self, account: str, amount: Ciphertext) -> None:
        fhe = self.fhe
        current = self._balances.get(account)
        updated = amount if current is None else fhe.add(current, amount)
        fhe.allow_this(updated)
        fhe.allow(updated, account)
        self._balances[account] = updated
