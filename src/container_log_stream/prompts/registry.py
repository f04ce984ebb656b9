"""MCP prompt registry.

Prompts are predefined conversation/workflow templates that the client can invoke explicitly.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP


def investigate_prompt(container_name: str, focus: str = "") -> list[dict[str, Any]]:
    """Build the messages for investigating a container's live logs."""
    focus_line = f"Focus on: {focus}\n" if focus else ""
    return [
        {
            "role": "system",
            "content": (
                "You are a senior incident triage assistant for containerized services. "
                "Provide concise, evidence-based summaries from live log data. "
                "Do not invent details; if the evidence is insufficient, say so."
            ),
        },
        {
            "role": "user",
            "content": (
                f"Investigate the logs of container '{container_name}'. Follow this workflow:\n"
                f"- Call start_log_stream with container_name={container_name!r}.\n"
                "- Call get_logs to read the buffered entries. To narrow down, call "
                "set_log_filter with level 'error' (errors and stderr) or a text filter, "
                "then call get_logs again.\n"
                "- Use log_stream_status to check whether the stream is still connected; "
                "reconnect messages and errors are part of the log itself.\n"
                "- Use only tool output or the logs resource for evidence; do not fabricate lines.\n"
                f"{focus_line}\n"
                "Return this structure:\n"
                "1) What happened (1-3 bullets)\n"
                "2) Evidence (2-5 quoted lines with their time)\n"
                "3) Suspected root cause (1-2 sentences; say 'Unknown' if unclear)\n"
                "4) Next actions (2-4 bullets)\n"
            ),
        },
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "The current filtered view is also available at:"},
                {"type": "resource", "uri": "logs://current"},
            ],
        },
    ]


def register_prompts(mcp: FastMCP) -> None:
    """Register prompt templates on the MCP server."""

    @mcp.prompt()
    def investigate_container_logs(container_name: str, focus: str = "") -> list[dict[str, Any]]:
        """Build a prompt for investigating a container's live logs."""
        return investigate_prompt(container_name, focus)
