"""Reconnect backoff policy.

Pure functions of the attempt number; the attempt counter itself lives with
the caller (the connection manager).
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import StreamConfig


def next_delay(attempt: int, *, base_delay: float = 2.0, factor: float = 1.5) -> float:
    """Return the delay in seconds before reconnect ``attempt`` (1-based)."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return base_delay * factor ** (attempt - 1)


def should_give_up(attempt: int, *, max_attempts: int = 5) -> bool:
    """Return True once ``attempt`` reaches the configured maximum."""
    return attempt >= max_attempts


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """Configured backoff parameters bound to the pure policy functions."""

    base_delay: float = 2.0
    factor: float = 1.5
    max_attempts: int = 5

    def __post_init__(self) -> None:
        if self.base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        if self.factor <= 1:
            raise ValueError("factor must be > 1")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")

    @classmethod
    def from_config(cls, cfg: StreamConfig) -> ReconnectPolicy:
        return cls(
            base_delay=cfg.base_delay,
            factor=cfg.backoff_factor,
            max_attempts=cfg.max_attempts,
        )

    def next_delay(self, attempt: int) -> float:
        return next_delay(attempt, base_delay=self.base_delay, factor=self.factor)

    def should_give_up(self, attempt: int) -> bool:
        return should_give_up(attempt, max_attempts=self.max_attempts)
