"""Stream configuration and environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

API_URL_ENV = "CONTAINER_LOGS_API_URL"
WS_URL_ENV = "CONTAINER_LOGS_WS_URL"
BUFFER_SIZE_ENV = "CONTAINER_LOGS_BUFFER_SIZE"
RECONNECT_DELAY_ENV = "CONTAINER_LOGS_RECONNECT_DELAY"
MAX_RECONNECTS_ENV = "CONTAINER_LOGS_MAX_RECONNECTS"

# WebSocket close code for an intentional, clean shutdown (RFC 6455).
NORMAL_CLOSURE = 1000


@dataclass(frozen=True, slots=True)
class StreamConfig:
    api_base_url: str = "http://localhost:8000"
    ws_base_url: str = "ws://localhost:8004"
    token_path: str = "/auth/jwt/"

    buffer_size: int = 1000

    # Reconnect backoff: base_delay * backoff_factor ** (attempt - 1)
    base_delay: float = 2.0
    backoff_factor: float = 1.5
    max_attempts: int = 5

    open_timeout: float = 10.0
    request_timeout: float = 10.0

    @property
    def token_url(self) -> str:
        return self.api_base_url.rstrip("/") + self.token_path

    def stream_url(self, token: str) -> str:
        """Return the streaming endpoint addressed by a token."""
        return f"{self.ws_base_url.rstrip('/')}/ws/logs/{token}"


def _env_int(name: str, *, minimum: int) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def resolve_stream_config(cfg: StreamConfig | None = None) -> StreamConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = StreamConfig()

    overrides: dict[str, object] = {}

    api_url = os.getenv(API_URL_ENV)
    if api_url:
        overrides["api_base_url"] = api_url
    ws_url = os.getenv(WS_URL_ENV)
    if ws_url:
        if not ws_url.startswith(("ws://", "wss://")):
            raise ValueError(f"{WS_URL_ENV} must start with ws:// or wss://")
        overrides["ws_base_url"] = ws_url

    buffer_size = _env_int(BUFFER_SIZE_ENV, minimum=1)
    if buffer_size is not None:
        overrides["buffer_size"] = buffer_size
    max_attempts = _env_int(MAX_RECONNECTS_ENV, minimum=0)
    if max_attempts is not None:
        overrides["max_attempts"] = max_attempts
    base_delay = _env_float(RECONNECT_DELAY_ENV)
    if base_delay is not None:
        overrides["base_delay"] = base_delay

    if not overrides:
        return cfg
    return replace(cfg, **overrides)
