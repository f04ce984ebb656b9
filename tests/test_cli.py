from __future__ import annotations

import asyncio

import pytest

from container_log_stream.cli import _config_from_args, build_parser, follow
from container_log_stream.core.config import StreamConfig
from container_log_stream.core.errors import AuthError, TransportError
from container_log_stream.core.models import LevelFilter


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["web"])
    assert args.container == "web"
    assert args.level is LevelFilter.ALL
    assert args.filter_text == ""
    assert args.cookies == []


def test_parser_options(monkeypatch) -> None:
    monkeypatch.delenv("CONTAINER_LOGS_MAX_RECONNECTS", raising=False)
    args = build_parser().parse_args(
        [
            "web",
            "--level",
            "ERROR",
            "--filter",
            "timeout",
            "--cookie",
            "sessionid=abc",
            "--ws-url",
            "wss://logs.example.org",
            "--max-reconnects",
            "2",
        ]
    )
    assert args.level is LevelFilter.ERROR
    assert args.cookies == [("sessionid", "abc")]

    cfg = _config_from_args(args)
    assert cfg.ws_base_url == "wss://logs.example.org"
    assert cfg.max_attempts == 2


@pytest.mark.parametrize(
    "argv",
    [
        ["web", "--level", "loud"],
        ["web", "--cookie", "novalue"],
        ["web", "--max-reconnects", "-1"],
    ],
)
def test_parser_rejects_bad_values(argv: list[str]) -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(argv)


def _follow_args(*argv: str):
    return build_parser().parse_args(["web", *argv])


@pytest.mark.asyncio
async def test_follow_token_failure_exits_2(make_tokens, transports, capsys) -> None:
    tokens = make_tokens(error=AuthError("Invalid token response"))

    code = await follow(_follow_args(), StreamConfig(), tokens=tokens, transport_factory=transports)

    assert code == 2
    assert transports.created == []
    assert "Invalid token response" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_follow_handshake_rejection_exits_2(tokens, make_transports, capsys) -> None:
    transports = make_transports(always_fail=AuthError("Log service rejected the token (HTTP 401)"))

    code = await follow(_follow_args(), StreamConfig(), tokens=tokens, transport_factory=transports)

    assert code == 2
    assert len(transports.created) == 1
    assert "HTTP 401" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_follow_gives_up_exits_1(tokens, make_transports, capsys) -> None:
    transports = make_transports(always_fail=TransportError("connection refused"))
    cfg = StreamConfig(base_delay=0.001, max_attempts=1)

    code = await follow(_follow_args(), cfg, tokens=tokens, transport_factory=transports)

    assert code == 1
    assert "Failed to reconnect after 1 attempts" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_follow_clean_close_exits_0(tokens, transports, wait_until, capsys) -> None:
    task = asyncio.create_task(
        follow(_follow_args(), StreamConfig(base_delay=30.0), tokens=tokens, transport_factory=transports)
    )
    await wait_until(lambda: transports.created and transports.last.sent)

    transports.last.push_frame(type="log_line", message="GET /health 200")
    transports.last.drop(1000, "bye")
    code = await asyncio.wait_for(task, timeout=2.0)

    assert code == 0
    out = capsys.readouterr().out
    assert "GET /health 200" in out
    assert "Log stream closed by server" in out


@pytest.mark.asyncio
async def test_follow_prints_only_matching_entries(tokens, transports, wait_until, capsys) -> None:
    task = asyncio.create_task(
        follow(_follow_args("--level", "error"), StreamConfig(), tokens=tokens, transport_factory=transports)
    )
    await wait_until(lambda: transports.created and transports.last.sent)

    transports.last.push_frame(type="log_line", message="all good")
    transports.last.push_frame(type="log_error", message="disk full")
    transports.last.drop(1000)
    assert await asyncio.wait_for(task, timeout=2.0) == 0

    out = capsys.readouterr().out
    assert "disk full" in out
    assert "all good" not in out
