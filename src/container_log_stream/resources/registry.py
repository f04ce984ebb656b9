"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from mcp.server.fastmcp import FastMCP

from container_log_stream.core.classifier import FrameModel
from container_log_stream.core.session import LogSession
from container_log_stream.core.view import empty_state_message, format_plain


def current_logs_text(session: LogSession) -> str:
    """Return the filtered view as plain text, one entry per line."""
    entries = session.filtered_logs()
    empty = empty_state_message(len(session.buffer), len(entries))
    if empty is not None:
        return f"{empty[0]}\n{empty[1]}\n"
    return "".join(format_plain(e) + "\n" for e in entries)


def register_resources(mcp: FastMCP, get_session: Callable[[], LogSession]) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("logs://help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        return (
            "Resources:\n"
            "- logs://help\n"
            "- logs://current (filtered view of the live buffer, plain text)\n"
            "- logs://summary (stream status figures, JSON)\n"
            "- logs://schemas/frame (server-to-client frame schema)\n"
        )

    @mcp.resource("logs://current")
    def current_logs() -> str:
        """Return the current filtered log view."""
        return current_logs_text(get_session())

    @mcp.resource("logs://summary")
    def summary() -> dict[str, Any]:
        """Return summary figures for the active stream."""
        return get_session().summary().to_dict()

    @mcp.resource("logs://schemas/frame")
    def frame_schema() -> dict[str, Any]:
        """Return the JSON schema for inbound frames."""
        return FrameModel.model_json_schema()
