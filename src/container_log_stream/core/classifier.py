"""Inbound frame classification.

Turns raw transport frames into :class:`LogEntry` values, inferring the
timestamp for container output lines that start with an ISO-8601 prefix.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime

from pydantic import BaseModel, ValidationError

from .errors import ParseError
from .models import OUTPUT_KINDS, EntryKind, LogEntry

logger = logging.getLogger(__name__)

_LEADING_TS_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:[.,]\d+)?(?:Z|[+-]\d{2}:?\d{2})?"
)


class FrameModel(BaseModel):
    """Server-to-client frame payload."""

    type: EntryKind
    message: str = ""
    timestamp: str | None = None


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp into UTC; assume UTC when tz is missing."""
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00").replace(",", "."))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def leading_timestamp(message: str) -> datetime | None:
    """Return the timestamp a message starts with, if any and if valid."""
    m = _LEADING_TS_RE.match(message)
    if not m:
        return None
    ts = parse_timestamp(m.group(0))
    if ts is None:
        logger.debug("Ignoring unparseable timestamp prefix %r", m.group(0))
    return ts


def make_entry(
    kind: EntryKind,
    message: str,
    *,
    timestamp: datetime | None = None,
    received_at: datetime | None = None,
) -> LogEntry:
    """Build an entry, resolving its timestamp.

    Precedence: explicit timestamp, then (for output kinds) the message's
    leading timestamp, then receipt time.
    """
    ts = timestamp
    if ts is None and kind in OUTPUT_KINDS:
        ts = leading_timestamp(message)
    if ts is None:
        ts = received_at or datetime.now(UTC)
    return LogEntry(kind=kind, message=message, timestamp=ts)


def classify_frame(raw: str | bytes, *, received_at: datetime | None = None) -> LogEntry:
    """Decode one JSON frame into a LogEntry or raise ParseError."""
    try:
        frame = FrameModel.model_validate_json(raw)
    except ValidationError as exc:
        raise ParseError(_describe(exc)) from exc

    explicit: datetime | None = None
    if frame.timestamp:
        explicit = parse_timestamp(frame.timestamp)
        if explicit is None:
            logger.debug("Frame timestamp %r is not ISO-8601; falling back", frame.timestamp)

    return make_entry(frame.type, frame.message, timestamp=explicit, received_at=received_at)


def _describe(exc: ValidationError) -> str:
    """Condense a pydantic error into one line."""
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "frame"
    return f"{loc}: {err.get('msg', 'invalid')}"
