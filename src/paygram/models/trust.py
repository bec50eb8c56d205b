"""Trust record and tier data models.

Scores are encrypted integers in the logical range [0, 100], written by
authorized oracles and never decrypted by the registry. Tiers are
derived under encryption against fixed thresholds:

    HIGH    score >= 75
    MEDIUM  score >= 40
    LOW     score <  40

A score older than SCORE_EXPIRY_SECONDS is expired; tier evaluation on
an expired score fails rather than returning a stale classification.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from paygram.fhe.types import Ciphertext

HIGH_TRUST_THRESHOLD = 75
MEDIUM_TRUST_THRESHOLD = 40
MAX_SCORE = 100
SCORE_EXPIRY_SECONDS = 90 * 24 * 60 * 60


class TrustTier(int, enum.Enum):
    """Plaintext meaning of the encrypted tier returned by get_trust_tier."""
    LOW = 0
    MEDIUM = 1
    HIGH = 2


@dataclass
class TrustRecord:
    """Current score state for one subject.

    Invariant: has_score is True iff last_update != 0 iff score is set.
    Revocation clears all three.
    """
    score: Optional[Ciphertext] = None
    has_score: bool = False
    last_update: int = 0

    def set(self, score: Ciphertext, now: int) -> bool:
        """Store a new score. Returns True when this is a first score."""
        first = not self.has_score
        self.score = score
        self.has_score = True
        self.last_update = now
        return first

    def clear(self) -> None:
        self.score = None
        self.has_score = False
        self.last_update = 0

    def is_expired(self, now: int) -> bool:
        """Unscored counts as expired."""
        if not self.has_score:
            return True
        return now - self.last_update > SCORE_EXPIRY_SECONDS
