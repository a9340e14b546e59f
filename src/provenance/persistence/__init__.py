"""Persistence: audit event log and registry state snapshots."""

from provenance.persistence.event_log import EventKind, EventLog, EventRecord
from provenance.persistence.state_store import StateStore

__all__ = ["EventKind", "EventLog", "EventRecord", "StateStore"]
