"""Stream summary figures for status displays."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import tzinfo
from typing import Any

from ..models import ConnectionState, EntryKind, LogEntry
from .highlight import format_time

_STATUS_TEXT = {
    ConnectionState.IDLE: "Idle",
    ConnectionState.AWAITING_TOKEN: "Authenticating",
    ConnectionState.CONNECTING: "Connecting",
    ConnectionState.STREAMING: "Streaming",
    ConnectionState.RECONNECTING: "Reconnecting",
    ConnectionState.STOPPED: "Stopped",
}


@dataclass(frozen=True, slots=True)
class StreamSummary:
    active: str
    status: str
    lines: int
    shown: int
    errors: int
    last: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def summarize(
    entries: Sequence[LogEntry],
    shown: int,
    *,
    container: str | None,
    state: ConnectionState,
    tz: tzinfo | None = None,
) -> StreamSummary:
    errors = sum(1 for e in entries if e.kind in (EntryKind.ERROR, EntryKind.LOG_STDERR))
    return StreamSummary(
        active=container or "none",
        status=_STATUS_TEXT[state],
        lines=len(entries),
        shown=shown,
        errors=errors,
        last=format_time(entries[-1], tz) if entries else "-",
    )


def empty_state_message(total: int, shown: int) -> tuple[str, str] | None:
    """Return (headline, hint) when nothing is shown, else None."""
    if shown:
        return None
    if total == 0:
        return "No logs available", "Logs will appear once streaming begins"
    return "No logs match the current filters", "Adjust the filter or log level to see more entries"
