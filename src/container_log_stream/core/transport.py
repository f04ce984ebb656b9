"""Streaming transport interface and its WebSocket implementation."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidStatus, WebSocketException

from .config import NORMAL_CLOSURE, StreamConfig
from .errors import AuthError, TransportClosed, TransportError

logger = logging.getLogger(__name__)

# Close code used when the peer vanished without a close frame.
ABNORMAL_CLOSURE = 1006

_TOKEN_IN_URL_RE = re.compile(r"(/ws/logs/)[^/?#]+")


def redact_url(url: str) -> str:
    """Hide the token path segment of a streaming URL."""
    return _TOKEN_IN_URL_RE.sub(r"\1<token>", url)


class Transport(Protocol):
    """Bidirectional message transport used by the connection manager.

    ``receive`` returns one text frame at a time and raises
    :class:`TransportClosed` once the connection is gone.
    """

    async def open(self, url: str) -> None:
        ...

    async def send(self, payload: dict[str, Any]) -> None:
        ...

    async def receive(self) -> str:
        ...

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        ...


class WebSocketTransport:
    """Transport backed by a ``websockets`` client connection."""

    def __init__(self, cfg: StreamConfig | None = None) -> None:
        self._cfg = cfg or StreamConfig()
        self._conn: ClientConnection | None = None

    async def open(self, url: str) -> None:
        logger.info("Connecting to WebSocket: %s", redact_url(url))
        try:
            self._conn = await connect(url, open_timeout=self._cfg.open_timeout)
        except InvalidStatus as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise AuthError(f"Log service rejected the token (HTTP {status})") from exc
            raise TransportError(f"Log service refused the connection (HTTP {status})") from exc
        except (WebSocketException, OSError, TimeoutError) as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        logger.info("WebSocket connected")

    def _require(self) -> ClientConnection:
        if self._conn is None:
            raise TransportError("transport is not open")
        return self._conn

    async def send(self, payload: dict[str, Any]) -> None:
        conn = self._require()
        try:
            await conn.send(json.dumps(payload))
        except ConnectionClosed as exc:
            raise _closed(exc) from exc
        except (WebSocketException, OSError) as exc:
            raise TransportError(str(exc)) from exc

    async def receive(self) -> str:
        conn = self._require()
        try:
            data = await conn.recv()
        except ConnectionClosed as exc:
            raise _closed(exc) from exc
        except (WebSocketException, OSError) as exc:
            raise TransportClosed(ABNORMAL_CLOSURE, str(exc)) from exc
        if isinstance(data, bytes):
            return data.decode("utf-8", errors="replace")
        return data

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        conn = self._conn
        if conn is None:
            return
        try:
            await conn.close(code=code, reason=reason)
        except (WebSocketException, OSError) as exc:
            raise TransportError(str(exc)) from exc
        finally:
            self._conn = None


def _closed(exc: ConnectionClosed) -> TransportClosed:
    if exc.rcvd is None:
        return TransportClosed(ABNORMAL_CLOSURE, "")
    return TransportClosed(exc.rcvd.code, exc.rcvd.reason)
