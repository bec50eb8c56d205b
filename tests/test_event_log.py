"""Tests for the event log — proves persistence is append-only and tampering
is detected on load."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from accounts import EMP1, EMPLOYER, ORACLE, OWNER, START
from paygram.chain.runtime import BlockClock, Runtime
from paygram.deployment import deploy_paygram
from paygram.persistence.event_log import EventKind, EventLog, EventRecord


def _record(event_id: str = "evt_00000001") -> EventRecord:
    return EventRecord.create(
        event_id,
        EventKind.EMPLOYEE_ADDED,
        EMPLOYER,
        {"wallet": EMP1, "role": "engineer"},
        timestamp_utc=datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc),
    )


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _record().event_hash == _record().event_hash
        assert _record().event_hash.startswith("sha256:")

    def test_hash_covers_id(self) -> None:
        assert _record("evt_00000001").event_hash != _record("evt_00000002").event_hash

    def test_timestamp_format(self) -> None:
        assert _record().timestamp_utc == "2026-03-01T09:00:00Z"


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_record("evt_00000001"))
        log.append(_record("evt_00000002"))
        assert log.count == 2
        assert len(log.events(EventKind.EMPLOYEE_ADDED)) == 2
        assert log.events(EventKind.PAYROLL_EXECUTED) == []
        assert log.events(emitter=EMPLOYER)[0].event_id == "evt_00000001"
        assert log.last_event.event_id == "evt_00000002"

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        log.append(_record())
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(_record())

    def test_counts_by_kind(self) -> None:
        log = EventLog()
        log.append(_record("evt_00000001"))
        assert log.counts_by_kind() == {"employee_added": 1}

    def test_empty_log(self) -> None:
        log = EventLog()
        assert log.count == 0
        assert log.last_event is None


class TestPersistence:
    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_record("evt_00000001"))
        log.append(_record("evt_00000002"))

        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.last_event.event_hash == _record("evt_00000002").event_hash

    def test_tampered_payload_detected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_record())
        data = json.loads(path.read_text(encoding="utf-8"))
        data["payload"]["role"] = "ceo"
        path.write_text(json.dumps(data) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_duplicate_line_detected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_record())
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")

        with pytest.raises(ValueError, match="Duplicate event ID"):
            EventLog(storage_path=path)

    def test_runtime_resumes_numbering(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        first = Runtime(clock=BlockClock(START), event_log=EventLog(storage_path=path))
        deploy_paygram(first, OWNER, EMPLOYER, oracle=ORACLE)
        written = first.event_log.count

        second = Runtime(clock=BlockClock(START), event_log=EventLog(storage_path=path))
        deployment = deploy_paygram(second, OWNER, EMPLOYER, oracle=ORACLE)
        assert second.event_log.count == 2 * written
        assert deployment.runtime.event_log.last_event.event_id == f"evt_{2 * written:08d}"
