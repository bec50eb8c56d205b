"""Payroll models — employees and pending payments.

Employees and payments are never hard-deleted. Removal flips
``is_active``; settled or cancelled payments keep their record with a
terminal status. Payment ids come from a monotonically increasing
counter and are never reused.

Payment state machine:
    NONE → INSTANT                 (high trust, paid in the same run)
    NONE → DELAYED → RELEASED      (medium trust, after the time lock)
    NONE → ESCROWED → RELEASED     (low trust or unscored, employer approval)
    DELAYED | ESCROWED → COMPLETED (cancelled by the employer)

INSTANT, RELEASED and COMPLETED are terminal.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional

from paygram.errors import StateConflictError
from paygram.fhe.types import Ciphertext

DELAY_PERIOD_SECONDS = 24 * 60 * 60
MAX_BATCH_SIZE = 50
UNSCORED_ESCROW_MILESTONE = "Pending employer approval"
LOW_TRUST_ESCROW_MILESTONE = "Trust score below threshold"


class PaymentStatus(int, enum.Enum):
    """Lifecycle state of a pending payment. NONE means "does not exist"."""
    NONE = 0
    INSTANT = 1
    DELAYED = 2
    ESCROWED = 3
    RELEASED = 4
    COMPLETED = 5


PAYMENT_TRANSITIONS: Dict[PaymentStatus, frozenset] = {
    PaymentStatus.NONE: frozenset({
        PaymentStatus.INSTANT,
        PaymentStatus.DELAYED,
        PaymentStatus.ESCROWED,
    }),
    PaymentStatus.INSTANT: frozenset(),
    PaymentStatus.DELAYED: frozenset({
        PaymentStatus.RELEASED,
        PaymentStatus.COMPLETED,
    }),
    PaymentStatus.ESCROWED: frozenset({
        PaymentStatus.RELEASED,
        PaymentStatus.COMPLETED,
    }),
    PaymentStatus.RELEASED: frozenset(),
    PaymentStatus.COMPLETED: frozenset(),
}

OPEN_STATUSES = frozenset({PaymentStatus.DELAYED, PaymentStatus.ESCROWED})


@dataclass
class Employee:
    """An employee record. ``wallet`` is never cleared once set."""
    wallet: str
    encrypted_salary: Ciphertext
    is_active: bool
    hire_date: int
    last_pay_date: int = 0
    role: str = ""


@dataclass
class PendingPayment:
    """A disbursement record created by a payroll run.

    ``release_time`` is only meaningful while DELAYED; ``milestone`` is
    only non-empty for ESCROWED records.
    """
    payment_id: int
    employee: str
    encrypted_amount: Ciphertext
    status: PaymentStatus
    created_at: int
    release_time: int = 0
    milestone: str = ""
    settled_at: Optional[int] = None

    def transition_to(self, new_status: PaymentStatus) -> None:
        """Transition to a new status, validating the transition is legal."""
        allowed = PAYMENT_TRANSITIONS.get(self.status, frozenset())
        if new_status not in allowed:
            raise StateConflictError(
                f"Invalid payment transition: {self.status.name} → {new_status.name}. "
                f"Allowed: {', '.join(s.name for s in allowed) or 'none'}"
            )
        self.status = new_status

    def is_releasable(self, now: int) -> bool:
        if self.status == PaymentStatus.ESCROWED:
            return True
        return self.status == PaymentStatus.DELAYED and now >= self.release_time
