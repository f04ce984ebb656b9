from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from container_log_stream.core.buffer import LogBuffer
from container_log_stream.core.config import StreamConfig
from container_log_stream.core.errors import AuthError, TransportClosed, TransportError
from container_log_stream.core.models import Token


class FakeTransport:
    """In-memory transport; tests push frames and closures into it."""

    def __init__(
        self,
        *,
        open_error: Exception | None = None,
        send_error: TransportError | None = None,
    ) -> None:
        self.open_error = open_error
        self.send_error = send_error
        self.url: str | None = None
        self.sent: list[dict[str, Any]] = []
        self.closed: tuple[int, str] | None = None
        self._inbox: asyncio.Queue[str | Exception] = asyncio.Queue()

    async def open(self, url: str) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.url = url

    async def send(self, payload: dict[str, Any]) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)

    async def receive(self) -> str:
        item = await self._inbox.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = (code, reason)

    def push(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def push_frame(self, **payload: Any) -> None:
        self.push(json.dumps(payload))

    def drop(self, code: int, reason: str = "") -> None:
        self._inbox.put_nowait(TransportClosed(code, reason))

    def fail(self, exc: Exception) -> None:
        """Make the next receive() raise ``exc``."""
        self._inbox.put_nowait(exc)


class TransportFactory:
    """Hands out FakeTransports, optionally failing to open the first few."""

    def __init__(self, open_errors: list[Exception] | None = None, *, always_fail: Exception | None = None) -> None:
        self._open_errors = list(open_errors or [])
        self._always_fail = always_fail
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        if self._always_fail is not None:
            t = FakeTransport(open_error=self._always_fail)
        elif self._open_errors:
            t = FakeTransport(open_error=self._open_errors.pop(0))
        else:
            t = FakeTransport()
        self.created.append(t)
        return t

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]


class FakeTokens:
    def __init__(self, value: str = "tok", *, error: AuthError | None = None) -> None:
        self.value = value
        self.error = error
        self.fetches = 0
        self._token: Token | None = None

    @property
    def token(self) -> Token | None:
        return self._token

    async def fetch(self) -> Token:
        self.fetches += 1
        if self.error is not None:
            raise self.error
        self._token = Token(value=self.value)
        return self._token

    def invalidate(self) -> None:
        self._token = None


@pytest.fixture
def fast_config() -> StreamConfig:
    return StreamConfig(base_delay=0.01, max_attempts=3)


@pytest.fixture
def slow_config() -> StreamConfig:
    """Reconnect delay long enough that the timer never fires during a test."""
    return StreamConfig(base_delay=30.0, max_attempts=3)


@pytest.fixture
def buffer() -> LogBuffer:
    return LogBuffer(capacity=100)


@pytest.fixture
def tokens() -> FakeTokens:
    return FakeTokens()


@pytest.fixture
def transports() -> TransportFactory:
    return TransportFactory()


@pytest.fixture
def wait_until() -> Callable[[Callable[[], bool]], Awaitable[None]]:
    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached before timeout")
            await asyncio.sleep(0.001)

    return _wait


@pytest.fixture
def make_transports() -> type[TransportFactory]:
    return TransportFactory


@pytest.fixture
def make_tokens() -> type[FakeTokens]:
    return FakeTokens
