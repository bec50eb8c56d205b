"""Core data models for the confidential payroll engine."""

from paygram.models.payroll import (
    DELAY_PERIOD_SECONDS,
    LOW_TRUST_ESCROW_MILESTONE,
    MAX_BATCH_SIZE,
    OPEN_STATUSES,
    PAYMENT_TRANSITIONS,
    UNSCORED_ESCROW_MILESTONE,
    Employee,
    PaymentStatus,
    PendingPayment,
)
from paygram.models.trust import (
    HIGH_TRUST_THRESHOLD,
    MAX_SCORE,
    MEDIUM_TRUST_THRESHOLD,
    SCORE_EXPIRY_SECONDS,
    TrustRecord,
    TrustTier,
)

__all__ = [
    "DELAY_PERIOD_SECONDS",
    "HIGH_TRUST_THRESHOLD",
    "LOW_TRUST_ESCROW_MILESTONE",
    "MAX_BATCH_SIZE",
    "MAX_SCORE",
    "MEDIUM_TRUST_THRESHOLD",
    "OPEN_STATUSES",
    "PAYMENT_TRANSITIONS",
    "SCORE_EXPIRY_SECONDS",
    "UNSCORED_ESCROW_MILESTONE",
    "Employee",
    "PaymentStatus",
    "PendingPayment",
    "TrustRecord",
    "TrustTier",
]
