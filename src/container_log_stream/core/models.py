"""Core data models for container log streaming."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class EntryKind(str, Enum):
    """Entry kinds, valued by their wire tags."""

    SYSTEM = "system"
    ERROR = "error"
    STREAM_STARTED = "logs_started"
    STREAM_STOPPED = "logs_stopped"
    LOG_LINE = "log_line"
    LOG_STDERR = "log_error"


# Kinds whose message is container output (may carry its own timestamp).
OUTPUT_KINDS = frozenset({EntryKind.LOG_LINE, EntryKind.LOG_STDERR})


class ConnectionState(str, Enum):
    """Lifecycle states of one logical log stream."""

    IDLE = "idle"
    AWAITING_TOKEN = "awaiting_token"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    RECONNECTING = "reconnecting"
    STOPPED = "stopped"


class LevelFilter(str, Enum):
    """Level selector used by the filtered view."""

    ALL = "all"
    ERROR = "error"
    SYSTEM = "system"
    SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class LogEntry:
    """Classified log record held by the buffer."""

    kind: EntryKind
    message: str
    timestamp: datetime | None = None  # UTC; None only for entries built by hand


@dataclass(frozen=True, slots=True)
class Token:
    """Short-lived credential used to open the streaming connection."""

    value: str = field(repr=False)
