"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into session calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from typing import Any

from container_log_stream.core.models import LogEntry
from container_log_stream.core.session import LogSession
from container_log_stream.core.view import RenderedEntry, empty_state_message

DEFAULT_LIMIT = 200
HARD_LIMIT = 1000


def _entry_to_dict(entry: LogEntry) -> dict[str, Any]:
    """Convert a LogEntry into a JSON-serializable dict."""
    return {
        "type": entry.kind.value,
        "message": entry.message,
        "timestamp": entry.timestamp.isoformat() if entry.timestamp is not None else None,
    }


def _rendered_to_dict(r: RenderedEntry) -> dict[str, Any]:
    return {
        "type": r.kind.value,
        "label": r.label,
        "class": r.css_class,
        "time": r.time,
        "html": r.markup,
        "expandable": r.expandable,
    }


def status_impl(session: LogSession) -> dict[str, Any]:
    """Implementation for the `log_stream_status` MCP tool."""
    return {
        "container_name": session.container_name,
        "state": session.state.value,
        "streaming": session.is_streaming,
        "error": session.error,
        "filter_text": session.filter_text,
        "level": session.level.value,
        "auto_scroll": session.auto_scroll,
        "buffer_capacity": session.buffer.capacity,
        "summary": session.summary().to_dict(),
    }


async def start_log_stream_impl(session: LogSession, *, container_name: str) -> dict[str, Any]:
    """Implementation for the `start_log_stream` MCP tool.

    AuthError propagates so the client sees a failed call.
    """
    name = container_name.strip()
    if not name:
        raise ValueError("container_name must not be empty")
    await session.start(name)
    return status_impl(session)


async def stop_log_stream_impl(session: LogSession) -> dict[str, Any]:
    await session.stop()
    return status_impl(session)


def clear_logs_impl(session: LogSession) -> dict[str, Any]:
    session.clear()
    return status_impl(session)


def set_log_filter_impl(
    session: LogSession,
    *,
    text: str | None = None,
    level: str | None = None,
) -> dict[str, Any]:
    session.set_filter(text, level)
    return status_impl(session)


def set_auto_scroll_impl(session: LogSession, *, enabled: bool) -> dict[str, Any]:
    session.set_auto_scroll(enabled)
    return status_impl(session)


def get_logs_impl(
    session: LogSession,
    *,
    limit: int | None = None,
    rendered: bool = False,
) -> dict[str, Any]:
    """Implementation for the `get_logs` MCP tool.

    Returns the most recent ``limit`` entries of the filtered view.
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit <= 0:
        raise ValueError("limit must be > 0")
    if limit > HARD_LIMIT:
        limit = HARD_LIMIT

    total = len(session.buffer)
    if rendered:
        items = [_rendered_to_dict(r) for r in session.rendered_logs()]
    else:
        items = [_entry_to_dict(e) for e in session.filtered_logs()]
    shown = len(items)
    items = items[-limit:]

    out: dict[str, Any] = {
        "count": len(items),
        "shown": shown,
        "total": total,
        "entries": items,
    }
    empty = empty_state_message(total, shown)
    if empty is not None:
        out["empty"] = {"message": empty[0], "hint": empty[1]}
    return out
