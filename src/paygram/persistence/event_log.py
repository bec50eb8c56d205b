"""Append-only event log — the audit trail of every contract event.

Contracts emit events during a transaction; the runtime buffers them and
appends them here only when the transaction commits. A reverted call
leaves no trace in the log. Events are immutable once written.

Payloads carry addresses, ids, timestamps and ciphertext handles only.
No plaintext salary, amount or score is ever written: external observers
can follow the payroll lifecycle without learning an encrypted value.

The log can be persisted to a JSONL file (one JSON object per line).
Loading recomputes every record's hash and fails closed on tampering or
duplicate event ids.
"""

from __future__ import annotations

import enum
import hashlib
import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class EventKind(str, enum.Enum):
    """Classification of contract events."""
    # Ownership (all contracts)
    OWNERSHIP_TRANSFER_STARTED = "ownership_transfer_started"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"
    # Trust registry
    ORACLE_AUTHORIZED = "oracle_authorized"
    TRUST_SCORE_UPDATED = "trust_score_updated"
    TRUST_SCORE_REVOKED = "trust_score_revoked"
    SCORE_ACCESS_GRANTED = "score_access_granted"
    # Employees
    EMPLOYEE_ADDED = "employee_added"
    EMPLOYEE_REMOVED = "employee_removed"
    EMPLOYEE_UPDATED = "employee_updated"
    SALARY_UPDATED = "salary_updated"
    # Payroll and payments
    PAYROLL_EXECUTED = "payroll_executed"
    INSTANT_PAYMENT = "instant_payment"
    PAYMENT_DELAYED = "payment_delayed"
    PAYMENT_ESCROWED = "payment_escrowed"
    PAYMENT_RELEASED = "payment_released"
    PAYMENT_CANCELLED = "payment_cancelled"
    # Payroll admin
    TRUST_SCORING_UPDATED = "trust_scoring_updated"
    PAY_TOKEN_UPDATED = "pay_token_updated"
    EMPLOYER_TRANSFERRED = "employer_transferred"
    # Confidential token
    TOKENS_MINTED = "tokens_minted"
    CONFIDENTIAL_TRANSFER = "confidential_transfer"
    PAYROLL_CORE_UPDATED = "payroll_core_updated"


def event_digest(fields: dict[str, Any]) -> str:
    """sha256 over the sorted-key JSON of every field except the hash."""
    body = {k: v for k, v in fields.items() if k != "event_hash"}
    encoded = json.dumps(body, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return "sha256:" + hashlib.sha256(encoded).hexdigest()


@dataclass(frozen=True)
class EventRecord:
    """One committed contract event.

    ``emitter`` is the address of the contract that emitted it.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    emitter: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        emitter: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        stamp = (timestamp_utc or datetime.now(timezone.utc)).strftime(TIMESTAMP_FORMAT)
        fields = {
            "event_id": event_id,
            "event_kind": event_kind.value,
            "timestamp_utc": stamp,
            "emitter": emitter,
            "payload": payload,
        }
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=stamp,
            emitter=emitter,
            payload=payload,
            event_hash=event_digest(fields),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_kind": self.event_kind.value,
            "timestamp_utc": self.timestamp_utc,
            "emitter": self.emitter,
            "payload": self.payload,
            "event_hash": self.event_hash,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> EventRecord:
        """Rebuild a stored record. Raises ValueError if its hash is wrong."""
        expected = event_digest(data)
        if data["event_hash"] != expected:
            raise ValueError(
                f"Integrity check failed: event {data['event_id']} "
                f"stored hash {data['event_hash']} != computed {expected}"
            )
        return EventRecord(
            event_id=data["event_id"],
            event_kind=EventKind(data["event_kind"]),
            timestamp_utc=data["timestamp_utc"],
            emitter=data["emitter"],
            payload=data["payload"],
            event_hash=data["event_hash"],
        )


class EventLog:
    """In-memory event list with optional JSONL mirror.

    Usage:
        log = EventLog(storage_path=Path("data/events.jsonl"))
        log.append(EventRecord.create("evt_00000001", kind, emitter, payload))
        log.events(EventKind.PAYROLL_EXECUTED)
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._storage_path = storage_path
        self._records: list[EventRecord] = []
        self._seen: set[str] = set()
        if storage_path is not None and storage_path.exists():
            for line_num, record in self._read(storage_path):
                if record.event_id in self._seen:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {record.event_id}"
                    )
                self._remember(record)

    def append(self, event: EventRecord) -> None:
        """Raises ValueError on a reused event id."""
        if event.event_id in self._seen:
            raise ValueError(f"Duplicate event ID: {event.event_id}")
        self._remember(event)
        if self._storage_path is not None:
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with self._storage_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(event.to_dict(), sort_keys=True, ensure_ascii=False))
                fh.write("\n")

    def events(
        self,
        kind: Optional[EventKind] = None,
        emitter: Optional[str] = None,
    ) -> list[EventRecord]:
        return [
            e for e in self._records
            if (kind is None or e.event_kind == kind)
            and (emitter is None or e.emitter == emitter)
        ]

    def counts_by_kind(self) -> dict[str, int]:
        return dict(Counter(e.event_kind.value for e in self._records))

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._records[-1] if self._records else None

    def _remember(self, record: EventRecord) -> None:
        self._records.append(record)
        self._seen.add(record.event_id)

    @staticmethod
    def _read(path: Path) -> Iterator[tuple[int, EventRecord]]:
        with path.open("r", encoding="utf-8") as fh:
            for line_num, raw in enumerate(fh, 1):
                if not raw.strip():
                    continue
                try:
                    record = EventRecord.from_dict(json.loads(raw))
                except ValueError as exc:
                    raise ValueError(f"line {line_num}: {exc}") from exc
                yield line_num, record
