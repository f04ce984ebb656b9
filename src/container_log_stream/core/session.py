"""Display-facing log session.

Holds the buffer, the filter state and the connection manager for the
currently selected container. Switching containers discards the old manager
and its entries; nothing is carried over.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import tzinfo

from .buffer import LogBuffer
from .config import StreamConfig, resolve_stream_config
from .manager import ConnectionManager, TokenSource
from .models import ConnectionState, LevelFilter, LogEntry
from .token import TokenProvider
from .transport import Transport, WebSocketTransport
from .view import (
    RenderedEntry,
    StreamSummary,
    filter_entries,
    parse_level,
    render_entry,
    summarize,
)

logger = logging.getLogger(__name__)


class LogSession:
    def __init__(
        self,
        cfg: StreamConfig | None = None,
        *,
        tokens: TokenSource | None = None,
        transport_factory: Callable[[], Transport] | None = None,
        on_entry: Callable[[LogEntry], None] | None = None,
    ) -> None:
        self._cfg = cfg if cfg is not None else resolve_stream_config()
        self.buffer = LogBuffer(self._cfg.buffer_size)
        self._tokens = tokens if tokens is not None else TokenProvider(self._cfg)
        self._transport_factory = transport_factory or (lambda: WebSocketTransport(self._cfg))
        self._on_entry = on_entry

        self._container: str | None = None
        self._manager: ConnectionManager | None = None
        self._error: str | None = None

        self.filter_text = ""
        self.level = LevelFilter.ALL
        self.auto_scroll = True

    # -- state exposed to the display layer ---------------------------------

    @property
    def container_name(self) -> str | None:
        return self._container

    @property
    def state(self) -> ConnectionState:
        return self._manager.state if self._manager is not None else ConnectionState.IDLE

    @property
    def is_streaming(self) -> bool:
        return self._manager is not None and self._manager.is_streaming

    @property
    def error(self) -> str | None:
        """Most recent error text, for banner-style display."""
        if self._error is not None:
            return self._error
        return self._manager.last_error if self._manager is not None else None

    @property
    def auth_failed(self) -> bool:
        """True when the last start ended because the service refused our credentials."""
        return self._manager is not None and self._manager.auth_failed

    @property
    def logs(self) -> tuple[LogEntry, ...]:
        return self.buffer.snapshot()

    def filtered_logs(self) -> list[LogEntry]:
        return filter_entries(self.buffer.snapshot(), text=self.filter_text, level=self.level)

    def rendered_logs(self, *, tz: tzinfo | None = None) -> list[RenderedEntry]:
        return [render_entry(e, self.filter_text, tz=tz) for e in self.filtered_logs()]

    def summary(self, *, tz: tzinfo | None = None) -> StreamSummary:
        entries = self.buffer.snapshot()
        shown = len(filter_entries(entries, text=self.filter_text, level=self.level))
        return summarize(entries, shown, container=self._container, state=self.state, tz=tz)

    # -- commands -----------------------------------------------------------

    async def start(self, container_name: str | None = None) -> None:
        """Start streaming ``container_name`` (or the current selection)."""
        target = container_name or self._container
        if not target:
            self._error = "Please select a container first"
            logger.warning(self._error)
            return
        self._error = None

        manager = self._manager
        if target != self._container or manager is None:
            manager = await self._select(target)
        await manager.start()

    async def stop(self) -> None:
        if self._manager is not None:
            await self._manager.stop()

    def clear(self) -> None:
        self.buffer.clear()
        logger.info("Logs cleared")

    def set_filter(self, text: str | None = None, level: LevelFilter | str | None = None) -> None:
        """Update the view filter; a value left as None keeps its current setting."""
        if level is not None:
            self.level = parse_level(level)
        if text is not None:
            self.filter_text = text

    def set_auto_scroll(self, enabled: bool) -> None:
        self.auto_scroll = bool(enabled)

    async def wait_stopped(self) -> None:
        if self._manager is not None:
            await self._manager.wait_stopped()

    async def _select(self, container_name: str) -> ConnectionManager:
        old = self._manager
        if old is not None and old.state is not ConnectionState.STOPPED:
            logger.info("Switching log stream from %s to %s", old.container_name, container_name)
            await old.stop()
        self.buffer.clear()
        self._container = container_name
        self._manager = ConnectionManager(
            container_name,
            tokens=self._tokens,
            transport_factory=self._transport_factory,
            buffer=self.buffer,
            cfg=self._cfg,
            on_entry=self._on_entry,
        )
        return self._manager
