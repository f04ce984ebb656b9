"""Core log streaming: models, buffer, classifier, connection manager, views."""

from __future__ import annotations

from .buffer import LogBuffer
from .config import NORMAL_CLOSURE, StreamConfig, resolve_stream_config
from .errors import AuthError, ContainerLogError, ParseError, TransportClosed, TransportError
from .manager import ConnectionManager
from .models import ConnectionState, EntryKind, LevelFilter, LogEntry, Token
from .reconnect import ReconnectPolicy, next_delay, should_give_up
from .session import LogSession
from .token import TokenProvider
from .transport import Transport, WebSocketTransport

__all__ = [
    "NORMAL_CLOSURE",
    "AuthError",
    "ConnectionManager",
    "ConnectionState",
    "ContainerLogError",
    "EntryKind",
    "LevelFilter",
    "LogBuffer",
    "LogEntry",
    "LogSession",
    "ParseError",
    "ReconnectPolicy",
    "StreamConfig",
    "Token",
    "TokenProvider",
    "Transport",
    "TransportClosed",
    "TransportError",
    "WebSocketTransport",
    "next_delay",
    "resolve_stream_config",
    "should_give_up",
]
