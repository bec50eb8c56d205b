"""Typed error taxonomy for the confidential payroll engine.

Every error is a hard revert: the runtime restores the pre-call state
before the exception leaves the outermost call. Callers branch on the
exception type, never on message text.

Categories:
- AuthorizationError: caller lacks the required role.
- NotFoundError: referenced entity does not exist.
- StateConflictError: entity exists but is in the wrong state.
- InputValidationError: malformed caller input, rejected before any write.
- ConcurrencyError: re-entrant call into a guarded entry point.
- CiphertextError: raised by the ciphertext engine itself.
"""

from __future__ import annotations


class PayGramError(Exception):
    """Root of all errors raised by paygram contracts and the runtime."""


# ------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------

class AuthorizationError(PayGramError):
    """Caller lacks the role required for the operation."""


class NotFoundError(PayGramError):
    """The referenced record does not exist."""


class StateConflictError(PayGramError):
    """The record exists but its state forbids the operation."""


class InputValidationError(PayGramError):
    """Caller input is malformed."""


class ConcurrencyError(PayGramError):
    """A guarded entry point was re-entered."""


class CiphertextError(PayGramError):
    """Engine-level failure (bad proof, missing grant, engine offline)."""


# ------------------------------------------------------------------
# Authorization
# ------------------------------------------------------------------

class Unauthorized(AuthorizationError):
    """Caller is not allowed to perform this action."""


class UnauthorizedOracle(Unauthorized):
    """Caller is not an authorized trust oracle."""


class OwnableUnauthorizedAccount(Unauthorized):
    """Caller is not the owner (or the pending owner, on acceptance)."""

    def __init__(self, account: str) -> None:
        super().__init__(f"Account is not authorized: {account}")
        self.account = account


class NotEmployer(AuthorizationError):
    """Caller is not the registered employer."""


# ------------------------------------------------------------------
# Not found
# ------------------------------------------------------------------

class AccountNotScored(NotFoundError):
    """Subject has no live trust score."""


SubjectHasNoScore = AccountNotScored


class EmployeeNotFound(NotFoundError):
    """No employee record exists for the wallet."""


class PaymentNotFound(NotFoundError):
    """No pending payment exists for the id."""


# ------------------------------------------------------------------
# State conflicts
# ------------------------------------------------------------------

class EmployeeAlreadyExists(StateConflictError):
    """A record (active or removed) already exists for the wallet."""


class EmployeeNotActive(StateConflictError):
    """The employee has been removed."""


class PaymentNotReleasable(StateConflictError):
    """Payment is not in a releasable state (Delayed or Escrowed)."""


class PaymentAlreadyProcessed(StateConflictError):
    """Payment has already been released, cancelled or paid instantly."""


class DelayNotElapsed(StateConflictError):
    """A delayed payment's time lock has not expired yet."""


class ScoreExpired(StateConflictError):
    """The subject's trust score is older than the expiry window."""


# ------------------------------------------------------------------
# Input validation
# ------------------------------------------------------------------

class ZeroAddress(InputValidationError):
    """The null address was supplied where a principal is required."""


class BatchLengthMismatch(InputValidationError):
    """Parallel batch arrays differ in length."""


class InvalidScore(InputValidationError):
    """A plaintext trust score is negative."""


# ------------------------------------------------------------------
# Concurrency
# ------------------------------------------------------------------

class ReentrancyGuardReentrantCall(ConcurrencyError):
    """A non-reentrant entry point was called while already executing."""


# ------------------------------------------------------------------
# Ciphertext engine
# ------------------------------------------------------------------

class InvalidInputProof(CiphertextError):
    """The proof does not bind the external handle to this contract and user."""


class CiphertextAccessDenied(CiphertextError):
    """The principal holds no grant on the ciphertext handle."""


class CoprocessorUnavailable(CiphertextError):
    """The encrypted-arithmetic coprocessor is not reachable."""


class UnknownCiphertext(CiphertextError):
    """The handle does not refer to a ciphertext known to the engine."""


# ------------------------------------------------------------------
# Runtime
# ------------------------------------------------------------------

class InvalidAddress(InputValidationError):
    """The value is not a well-formed account address."""


class ContractNotFound(NotFoundError):
    """No contract is deployed at the address."""
