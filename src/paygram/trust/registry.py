"""Trust registry — confidential reputation scores and oblivious tiering.

Oracles write encrypted scores in [0, 100]. The registry never decrypts
a score and never returns a plaintext tier: tier checks compare under
encryption and hand back an encrypted boolean (or an encrypted 0/1/2
tier) that the caller may use for the rest of the transaction. Reading
a plaintext requires a separate, explicit decryption grant.

Per-subject state machine:
    Unscored → Scored      (first set; live-score counter +1)
    Scored   → Scored      (update; new ciphertext, expiry clock resets)
    Scored   → Unscored    (revoke; counter -1)
    Unscored → Scored      (re-score after revoke counts as a first set)

Out-of-range encrypted inputs are not rejected. Values failing the
``<= 100`` check are obliviously replaced with an encrypted zero, since
rejecting them would reveal the comparison result.
"""

from __future__ import annotations

import logging
from typing import Sequence

from paygram.chain.access import Ownable2Step
from paygram.chain.addresses import is_zero, to_address
from paygram.chain.runtime import Runtime, external
from paygram.errors import (
    AccountNotScored,
    BatchLengthMismatch,
    InvalidScore,
    ScoreExpired,
    UnauthorizedOracle,
    ZeroAddress,
)
from paygram.fhe.types import CipherKind, Ciphertext
from paygram.models.trust import (
    HIGH_TRUST_THRESHOLD,
    MAX_SCORE,
    MEDIUM_TRUST_THRESHOLD,
    SCORE_EXPIRY_SECONDS,
    TrustRecord,
    TrustTier,
)
from paygram.persistence.event_log import EventKind

logger = logging.getLogger(__name__)


class TrustRegistry(Ownable2Step):
    """Encrypted trust-score storage with oracle-gated writes.

    Usage:
        registry = runtime.deploy(TrustRegistry, owner, deployer=owner)
        registry.set_oracle(oracle, True, caller=owner)
        registry.set_trust_score_plaintext(alice, 82, caller=oracle)
        is_high = registry.is_high_trust(alice, caller=payroll.address)
    """

    HIGH_TRUST_THRESHOLD = HIGH_TRUST_THRESHOLD
    MEDIUM_TRUST_THRESHOLD = MEDIUM_TRUST_THRESHOLD
    MAX_SCORE = MAX_SCORE
    SCORE_EXPIRY = SCORE_EXPIRY_SECONDS

    def __init__(self, runtime: Runtime, deployer: str, initial_owner: str) -> None:
        super().__init__(runtime, deployer, initial_owner)
        self._oracles: dict[str, bool] = {}
        self._records: dict[str, TrustRecord] = {}
        self._total_scored = 0

    # ------------------------------------------------------------------
    # Oracle management
    # ------------------------------------------------------------------

    @external
    def set_oracle(self, oracle: str, authorized: bool, *, caller: str) -> None:
        self._only_owner(caller)
        oracle = to_address(oracle)
        if is_zero(oracle):
            raise ZeroAddress("Oracle cannot be the zero address")
        self._oracles[oracle] = bool(authorized)
        logger.info("Oracle %s authorized=%s on %s", oracle, bool(authorized), self.address)
        self._emit(EventKind.ORACLE_AUTHORIZED, oracle=oracle, authorized=bool(authorized))

    def authorized_oracles(self, oracle: str) -> bool:
        return self._oracles.get(to_address(oracle), False)

    @property
    def total_scored_addresses(self) -> int:
        return self._total_scored

    # ------------------------------------------------------------------
    # Score writes
    # ------------------------------------------------------------------

    @external
    def set_trust_score(
        self,
        subject: str,
        encrypted_score: str,
        proof: bytes,
        *,
        caller: str,
    ) -> None:
        """Store a proof-bound encrypted score, silently clamped to [0, 100]."""
        self._only_oracle(caller)
        subject = self._require_subject(subject)
        fhe = self.fhe
        imported = fhe.from_external(encrypted_score, proof, user=caller)
        in_range = fhe.le(imported, MAX_SCORE)
        clamped = fhe.select(in_range, imported, fhe.encrypt(0))
        self._store_score(subject, clamped)

    @external
    def set_trust_score_plaintext(self, subject: str, score: int, *, caller: str) -> None:
        """Convenience path: clamp in plaintext, then encrypt."""
        self._only_oracle(caller)
        subject = self._require_subject(subject)
        self._store_plaintext(subject, score)

    @external
    def batch_set_scores(
        self,
        subjects: Sequence[str],
        scores: Sequence[int],
        *,
        caller: str,
    ) -> None:
        self._only_oracle(caller)
        if len(subjects) != len(scores):
            raise BatchLengthMismatch(
                f"subjects ({len(subjects)}) and scores ({len(scores)}) differ in length"
            )
        for subject, score in zip(subjects, scores):
            self._store_plaintext(self._require_subject(subject), score)

    @external
    def revoke_score(self, subject: str, *, caller: str) -> None:
        self._only_oracle(caller)
        subject = to_address(subject)
        record = self._records.get(subject)
        if record is None or not record.has_score:
            raise AccountNotScored(f"No score to revoke for {subject}")
        record.clear()
        self._total_scored -= 1
        logger.info("Trust score revoked for %s", subject)
        self._emit(EventKind.TRUST_SCORE_REVOKED, subject=subject)

    # ------------------------------------------------------------------
    # Oblivious tier evaluation
    # ------------------------------------------------------------------

    @external
    def is_high_trust(self, subject: str, *, caller: str) -> Ciphertext:
        return self._compare(subject, caller, HIGH_TRUST_THRESHOLD, below=False)

    @external
    def is_medium_trust(self, subject: str, *, caller: str) -> Ciphertext:
        return self._compare(subject, caller, MEDIUM_TRUST_THRESHOLD, below=False)

    @external
    def is_low_trust(self, subject: str, *, caller: str) -> Ciphertext:
        return self._compare(subject, caller, MEDIUM_TRUST_THRESHOLD, below=True)

    @external
    def get_trust_tier(self, subject: str, *, caller: str) -> Ciphertext:
        """Encrypted tier: 2 = HIGH, 1 = MEDIUM, 0 = LOW.

        The owner receives a permanent grant for audit; the caller a
        transient one.
        """
        record = self._live_record(to_address(subject))
        fhe = self.fhe
        is_high = fhe.ge(record.score, HIGH_TRUST_THRESHOLD)
        is_medium = fhe.ge(record.score, MEDIUM_TRUST_THRESHOLD)
        lower = fhe.select(
            is_medium,
            fhe.encrypt(TrustTier.MEDIUM.value),
            fhe.encrypt(TrustTier.LOW.value),
        )
        tier = fhe.select(is_high, fhe.encrypt(TrustTier.HIGH.value), lower)
        fhe.allow_this(tier)
        fhe.allow(tier, self.owner)
        fhe.allow_transient(tier, caller)
        return tier

    # ------------------------------------------------------------------
    # Reads and access grants
    # ------------------------------------------------------------------

    def get_trust_score(self, subject: str) -> Ciphertext:
        """Raw score handle. Decrypting it needs a separate grant."""
        subject = to_address(subject)
        record = self._records.get(subject)
        if record is None or not record.has_score:
            raise AccountNotScored(f"No trust score for {subject}")
        return record.score

    def has_score(self, subject: str) -> bool:
        record = self._records.get(to_address(subject))
        return record is not None and record.has_score

    def is_score_expired(self, subject: str) -> bool:
        record = self._records.get(to_address(subject))
        if record is None:
            return True
        return record.is_expired(self.now)

    def last_update(self, subject: str) -> int:
        record = self._records.get(to_address(subject))
        return 0 if record is None else record.last_update

    @external
    def allow_score_access(self, subject: str, viewer: str, *, caller: str) -> None:
        """Grant ``viewer`` permission to decrypt the subject's current score."""
        self._only_owner(caller)
        subject = to_address(subject)
        viewer = to_address(viewer)
        record = self._records.get(subject)
        if record is None or not record.has_score:
            raise AccountNotScored(f"No trust score for {subject}")
        if is_zero(viewer):
            raise ZeroAddress("Viewer cannot be the zero address")
        self.fhe.allow(record.score, viewer)
        self._emit(EventKind.SCORE_ACCESS_GRANTED, subject=subject, viewer=viewer)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _only_oracle(self, caller: str) -> None:
        if not self._oracles.get(caller, False):
            raise UnauthorizedOracle(f"{caller} is not an authorized oracle")

    @staticmethod
    def _require_subject(subject: str) -> str:
        subject = to_address(subject)
        if is_zero(subject):
            raise ZeroAddress("Subject cannot be the zero address")
        return subject

    def _store_plaintext(self, subject: str, score: int) -> None:
        if score < 0:
            raise InvalidScore(f"Trust score for {subject} cannot be negative: {score}")
        self._store_score(subject, self.fhe.encrypt(min(score, MAX_SCORE)))

    def _store_score(self, subject: str, score: Ciphertext) -> None:
        self.fhe.allow_this(score)
        record = self._records.setdefault(subject, TrustRecord())
        if record.set(score, self.now):
            self._total_scored += 1
        logger.info("Trust score updated for %s at %d", subject, self.now)
        self._emit(
            EventKind.TRUST_SCORE_UPDATED,
            subject=subject,
            timestamp=self.now,
            score_handle=score.handle,
        )

    def _live_record(self, subject: str) -> TrustRecord:
        record = self._records.get(subject)
        if record is None or not record.has_score:
            raise AccountNotScored(f"No trust score for {subject}")
        if record.is_expired(self.now):
            raise ScoreExpired(
                f"Trust score for {subject} last updated at {record.last_update} "
                f"is older than {SCORE_EXPIRY_SECONDS}s"
            )
        return record

    def _compare(self, subject: str, caller: str, threshold: int, below: bool) -> Ciphertext:
        record = self._live_record(to_address(subject))
        fhe = self.fhe
        if below:
            result = fhe.lt(record.score, threshold)
        else:
            result = fhe.ge(record.score, threshold)
        fhe.allow_transient(result, caller)
        return result
