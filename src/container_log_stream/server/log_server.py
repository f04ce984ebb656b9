"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: commands against the live log session (start/stop/clear/filter)
- Resources: addressable views of the buffer (e.g., logs://current)
- Prompts: reusable conversation templates that clients can invoke

Run locally (stdio):
    python -m container_log_stream.server.log_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from container_log_stream.core.session import LogSession
from container_log_stream.prompts.registry import register_prompts
from container_log_stream.resources.registry import register_resources
from container_log_stream.tools.streaming import (
    clear_logs_impl,
    get_logs_impl,
    set_auto_scroll_impl,
    set_log_filter_impl,
    start_log_stream_impl,
    status_impl,
    stop_log_stream_impl,
)

LOGGER = logging.getLogger(__name__)

_session: LogSession | None = None


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("CONTAINER_LOGS_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_session() -> LogSession:
    """Return the process-wide session, creating it on first use."""
    global _session
    if _session is None:
        _session = LogSession()
    return _session


mcp = FastMCP("container-logs", json_response=True)

register_resources(mcp, get_session)
register_prompts(mcp)


@mcp.tool()
async def start_log_stream(container_name: str) -> dict[str, Any]:
    """Start streaming logs for a container.

    Switching to a different container stops the current stream and clears
    the buffer first. Progress, reconnects and errors appear as log entries.
    """
    return await start_log_stream_impl(get_session(), container_name=container_name)


@mcp.tool()
async def stop_log_stream() -> dict[str, Any]:
    """Stop the active log stream (no-op when already stopped)."""
    return await stop_log_stream_impl(get_session())


@mcp.tool()
def clear_logs() -> dict[str, Any]:
    """Drop all buffered log entries."""
    return clear_logs_impl(get_session())


@mcp.tool()
def set_log_filter(text: str | None = None, level: str | None = None) -> dict[str, Any]:
    """Set the view filter. Omitted values keep their current setting.

    Parameters
    ----------
    text:
        Case-insensitive substring an entry's message must contain. Empty string clears it.
    level:
        One of: all, error (errors and stderr), system, success (stream started).
    """
    return set_log_filter_impl(get_session(), text=text, level=level)


@mcp.tool()
def set_auto_scroll(enabled: bool) -> dict[str, Any]:
    """Toggle whether the display should follow new entries."""
    return set_auto_scroll_impl(get_session(), enabled=enabled)


@mcp.tool()
def get_logs(limit: int | None = None, rendered: bool = False) -> dict[str, Any]:
    """Return the most recent entries of the filtered view.

    Parameters
    ----------
    limit:
        Maximum number of entries returned (hard-capped in the implementation).
    rendered:
        When true, return display markup (escaped and highlighted) instead of raw messages.
    """
    return get_logs_impl(get_session(), limit=limit, rendered=rendered)


@mcp.tool()
def log_stream_status() -> dict[str, Any]:
    """Return connection state, last error, filter settings and summary figures."""
    return status_impl(get_session())


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
