from __future__ import annotations

import pytest

from container_log_stream.core.config import StreamConfig
from container_log_stream.core.errors import AuthError
from container_log_stream.core.session import LogSession
from container_log_stream.prompts.registry import investigate_prompt
from container_log_stream.resources.registry import current_logs_text
from container_log_stream.tools.streaming import (
    HARD_LIMIT,
    clear_logs_impl,
    get_logs_impl,
    set_auto_scroll_impl,
    set_log_filter_impl,
    start_log_stream_impl,
    status_impl,
    stop_log_stream_impl,
)


@pytest.fixture
def session(tokens, transports) -> LogSession:
    return LogSession(StreamConfig(base_delay=30.0), tokens=tokens, transport_factory=transports)


def test_status_before_start(session: LogSession) -> None:
    out = status_impl(session)
    assert out["state"] == "idle"
    assert out["streaming"] is False
    assert out["error"] is None
    assert out["summary"]["lines"] == 0
    assert out["buffer_capacity"] == 1000


@pytest.mark.asyncio
async def test_start_get_logs_and_stop(session: LogSession, transports, wait_until) -> None:
    out = await start_log_stream_impl(session, container_name=" web ")
    assert out["state"] == "streaming"
    assert out["container_name"] == "web"

    transports.last.push_frame(type="log_line", message="2025-01-01T00:00:00Z <b>ready</b>")
    await wait_until(lambda: len(session.buffer) == 3)

    logs = get_logs_impl(session, limit=1)
    assert logs["count"] == 1
    assert logs["total"] == 3
    assert logs["entries"][0]["type"] == "log_line"
    assert logs["entries"][0]["timestamp"] == "2025-01-01T00:00:00+00:00"

    rendered = get_logs_impl(session, limit=1, rendered=True)
    html = rendered["entries"][0]["html"]
    assert "<b>" not in html
    assert "log-highlight-success" in html

    out = await stop_log_stream_impl(session)
    assert out["state"] == "stopped"


@pytest.mark.asyncio
async def test_start_rejects_blank_container(session: LogSession) -> None:
    with pytest.raises(ValueError):
        await start_log_stream_impl(session, container_name="  ")


@pytest.mark.asyncio
async def test_start_propagates_auth_error(make_tokens, transports) -> None:
    session = LogSession(
        StreamConfig(),
        tokens=make_tokens(error=AuthError("Invalid token response")),
        transport_factory=transports,
    )
    with pytest.raises(AuthError):
        await start_log_stream_impl(session, container_name="web")
    assert "Invalid token response" in status_impl(session)["error"]


@pytest.mark.asyncio
async def test_filter_and_empty_state(session: LogSession) -> None:
    await start_log_stream_impl(session, container_name="web")

    out = set_log_filter_impl(session, text="nothing-matches", level="all")
    assert out["filter_text"] == "nothing-matches"
    logs = get_logs_impl(session)
    assert logs["count"] == 0
    assert logs["empty"]["message"] == "No logs match the current filters"

    clear_logs_impl(session)
    assert get_logs_impl(session)["empty"]["message"] == "No logs available"
    await stop_log_stream_impl(session)


def test_set_filter_text_only_keeps_level(session: LogSession) -> None:
    set_log_filter_impl(session, level="error")
    out = set_log_filter_impl(session, text="x")
    assert out["level"] == "error"
    assert out["filter_text"] == "x"


def test_set_filter_rejects_unknown_level(session: LogSession) -> None:
    with pytest.raises(ValueError):
        set_log_filter_impl(session, level="verbose")


def test_set_auto_scroll(session: LogSession) -> None:
    assert set_auto_scroll_impl(session, enabled=False)["auto_scroll"] is False


def test_get_logs_limit_validation(session: LogSession) -> None:
    with pytest.raises(ValueError):
        get_logs_impl(session, limit=0)
    assert get_logs_impl(session, limit=HARD_LIMIT * 10)["count"] == 0


@pytest.mark.asyncio
async def test_current_logs_resource_text(session: LogSession) -> None:
    assert current_logs_text(session).startswith("No logs available")

    await start_log_stream_impl(session, container_name="web")
    text = current_logs_text(session)
    assert "SYSTEM: Connecting to logs for web..." in text
    assert "STARTED: Log streaming started for web" in text
    await stop_log_stream_impl(session)


def test_investigate_prompt_mentions_tools() -> None:
    messages = investigate_prompt("web", focus="OOM kills")
    user = messages[1]["content"]
    assert "start_log_stream" in user
    assert "container_name='web'" in user
    assert "Focus on: OOM kills" in user
    assert messages[2]["content"][1]["uri"] == "logs://current"
