from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Callable
from dataclasses import replace

import httpx

from container_log_stream.core.config import StreamConfig, resolve_stream_config
from container_log_stream.core.errors import AuthError
from container_log_stream.core.manager import TokenSource
from container_log_stream.core.models import EntryKind, LevelFilter, LogEntry
from container_log_stream.core.session import LogSession
from container_log_stream.core.token import TokenProvider
from container_log_stream.core.transport import Transport
from container_log_stream.core.view import filter_entries, format_plain, parse_level


def _parse_level(s: str) -> LevelFilter:
    try:
        return parse_level(s)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _parse_cookie(s: str) -> tuple[str, str]:
    name, sep, value = s.partition("=")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError("cookie must look like NAME=VALUE")
    return name.strip(), value


def _non_negative_int(s: str) -> int:
    value = int(s)
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="container-logs",
        description="Follow a container's live log stream.",
    )
    p.add_argument("container")
    p.add_argument("--level", type=_parse_level, default=LevelFilter.ALL, help="all, error, system or success")
    p.add_argument("--filter", dest="filter_text", default="", help="Case-insensitive substring filter")
    p.add_argument("--api-url", default=None, help="Credential API base URL")
    p.add_argument("--ws-url", default=None, help="Streaming base URL (ws:// or wss://)")
    p.add_argument(
        "--cookie",
        dest="cookies",
        type=_parse_cookie,
        action="append",
        default=[],
        help="Session cookie sent to the credential endpoint (repeatable)",
    )
    p.add_argument("--max-reconnects", type=_non_negative_int, default=None, help="Give up after N reconnect attempts")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return p


def _config_from_args(args: argparse.Namespace) -> StreamConfig:
    cfg = resolve_stream_config()
    if args.api_url:
        cfg = replace(cfg, api_base_url=args.api_url)
    if args.ws_url:
        cfg = replace(cfg, ws_base_url=args.ws_url)
    if args.max_reconnects is not None:
        cfg = replace(cfg, max_attempts=args.max_reconnects)
    return cfg


async def follow(
    args: argparse.Namespace,
    cfg: StreamConfig,
    *,
    tokens: TokenSource | None = None,
    transport_factory: Callable[[], Transport] | None = None,
) -> int:
    """Print matching entries until the stream stops; return the exit code.

    0 when the stream closed normally, 2 when the service refused our
    credentials, 1 for any other terminal error.
    """
    stopping: list[asyncio.Task[None]] = []

    def on_entry(entry: LogEntry) -> None:
        if stopping or not filter_entries([entry], text=args.filter_text, level=args.level):
            return
        try:
            print(format_plain(entry), flush=True)
        except BrokenPipeError:
            # stdout reader went away (e.g. piped into head)
            stopping.append(asyncio.get_running_loop().create_task(session.stop()))

    async with httpx.AsyncClient(cookies=dict(args.cookies), timeout=cfg.request_timeout) as client:
        session = LogSession(
            cfg,
            tokens=tokens if tokens is not None else TokenProvider(cfg, client=client),
            transport_factory=transport_factory,
            on_entry=on_entry,
        )
        session.set_filter(args.filter_text, args.level)
        try:
            await session.start(args.container)
        except AuthError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

        try:
            await session.wait_stopped()
        finally:
            await session.stop()

    if stopping:
        # Python flushes stdout again at exit; send that to devnull.
        os.dup2(os.open(os.devnull, os.O_WRONLY), sys.stdout.fileno())
        return 0
    if session.auth_failed:
        print(f"Error: {session.error}", file=sys.stderr)
        return 2
    last = session.buffer.last()
    if last is not None and last.kind is EntryKind.ERROR:
        print(f"Error: {last.message}", file=sys.stderr)
        return 1
    return 0


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = _config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(2)

    try:
        code = asyncio.run(follow(args, cfg))
    except KeyboardInterrupt:
        code = 130
    raise SystemExit(code)


if __name__ == "__main__":
    main()
