"""Persistence — the append-only contract event log."""

from paygram.persistence.event_log import EventKind, EventLog, EventRecord

__all__ = ["EventKind", "EventLog", "EventRecord"]
