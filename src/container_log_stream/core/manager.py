"""Connection manager: socket lifecycle and the reconnect state machine.

One manager serves exactly one container. Every state transition runs on the
event loop under a single lock; ``stop()`` bumps an epoch counter before it
awaits anything, so reconnect timers and in-flight transitions scheduled
under an older epoch are discarded when they finally run.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from .buffer import LogBuffer
from .classifier import classify_frame, make_entry
from .config import NORMAL_CLOSURE, StreamConfig
from .errors import AuthError, ParseError, TransportClosed, TransportError
from .models import ConnectionState, EntryKind, LogEntry, Token
from .reconnect import ReconnectPolicy
from .transport import ABNORMAL_CLOSURE, Transport

logger = logging.getLogger(__name__)

INTERNAL_ERROR = 1011

_ACTIVE_STATES = frozenset(
    {
        ConnectionState.AWAITING_TOKEN,
        ConnectionState.CONNECTING,
        ConnectionState.STREAMING,
        ConnectionState.RECONNECTING,
    }
)


class TokenSource(Protocol):
    """What the manager needs from a token provider."""

    @property
    def token(self) -> Token | None:
        ...

    async def fetch(self) -> Token:
        ...

    def invalidate(self) -> None:
        ...


class ConnectionManager:
    """Drive one container's log stream into a :class:`LogBuffer`."""

    def __init__(
        self,
        container_name: str,
        *,
        tokens: TokenSource,
        transport_factory: Callable[[], Transport],
        buffer: LogBuffer,
        cfg: StreamConfig | None = None,
        policy: ReconnectPolicy | None = None,
        on_entry: Callable[[LogEntry], None] | None = None,
        on_state: Callable[[ConnectionState], None] | None = None,
    ) -> None:
        if not container_name:
            raise ValueError("container_name must not be empty")
        self._container = container_name
        self._tokens = tokens
        self._transport_factory = transport_factory
        self._buffer = buffer
        self._cfg = cfg or StreamConfig()
        self._policy = policy or ReconnectPolicy.from_config(self._cfg)
        self._on_entry = on_entry
        self._on_state = on_state

        self._state = ConnectionState.IDLE
        self._attempts = 0
        self._user_stopped = False
        self._epoch = 0
        self._lock = asyncio.Lock()
        self._stopped = asyncio.Event()

        self._transport: Transport | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._abort_task: asyncio.Task[None] | None = None

        self.last_error: str | None = None
        self.auth_failed = False

    @property
    def container_name(self) -> str:
        return self._container

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def is_streaming(self) -> bool:
        return self._state is ConnectionState.STREAMING

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    async def wait_stopped(self) -> None:
        """Block until the manager reaches ``STOPPED``."""
        await self._stopped.wait()

    # -- commands -----------------------------------------------------------

    async def start(self) -> None:
        """Open the stream; raises AuthError if no token can be obtained."""
        async with self._lock:
            if self._state in _ACTIVE_STATES:
                logger.debug("start() ignored for %s in state %s", self._container, self._state.value)
                return

            self._user_stopped = False
            self._cancel_reconnect()
            self._attempts = 0
            self._epoch += 1
            epoch = self._epoch
            self.last_error = None
            self.auth_failed = False

            if self._tokens.token is None:
                self._set_state(ConnectionState.AWAITING_TOKEN)
                try:
                    await self._tokens.fetch()
                except AuthError as exc:
                    self.auth_failed = True
                    self._report_error(f"Failed to authenticate for log streaming: {exc}")
                    self._set_state(ConnectionState.STOPPED)
                    raise
                if epoch != self._epoch:
                    # stop() arrived while the token was in flight
                    return

            await self._connect(epoch)

    async def stop(self) -> None:
        """Stop streaming; safe to call in any state."""
        self._user_stopped = True
        self._epoch += 1
        self._cancel_reconnect()

        async with self._lock:
            if self._state not in _ACTIVE_STATES:
                return

            was_streaming = self._state is ConnectionState.STREAMING
            transport, self._transport = self._transport, None
            reader, self._reader_task = self._reader_task, None

            if reader is not None and reader is not asyncio.current_task():
                reader.cancel()
                await asyncio.gather(reader, return_exceptions=True)

            if transport is not None:
                if was_streaming:
                    try:
                        await transport.send({"type": "stop_logs"})
                        logger.info("Sent stop_logs message")
                    except TransportError as exc:
                        logger.warning("Error sending stop_logs message: %s", exc)
                try:
                    await transport.close(NORMAL_CLOSURE, "User stopped logging")
                except TransportError as exc:
                    logger.warning("Error closing socket: %s", exc)

            self._attempts = 0
            self._set_state(ConnectionState.STOPPED)
            self._emit(EntryKind.STREAM_STOPPED, "Log streaming stopped")
            logger.info("Logging stopped by user")

    # -- transitions (lock held) --------------------------------------------

    async def _connect(self, epoch: int) -> None:
        self._set_state(ConnectionState.CONNECTING)
        self._emit(EntryKind.SYSTEM, f"Connecting to logs for {self._container}...")

        token = self._tokens.token
        if token is None:
            self._report_error("Failed to connect to log service: no authentication token")
            self._set_state(ConnectionState.STOPPED)
            return

        transport = self._transport_factory()
        try:
            await transport.open(self._cfg.stream_url(token.value))
        except AuthError as exc:
            # Expired or revoked token: the next start() fetches a new one.
            self._tokens.invalidate()
            self.auth_failed = True
            self._report_error(f"Failed to connect to log service: {exc}")
            self._set_state(ConnectionState.STOPPED)
            return
        except TransportError as exc:
            if epoch != self._epoch:
                return
            self._report_error(f"Failed to connect to log service: {exc}")
            self._schedule_reconnect(epoch)
            return

        if epoch != self._epoch:
            await self._close_quietly(transport)
            return

        self._transport = transport
        self._attempts = 0
        self._set_state(ConnectionState.STREAMING)
        try:
            await transport.send({"type": "start_logs", "container_name": self._container})
        except TransportError as exc:
            logger.warning("Error sending start_logs message: %s", exc)
            self._report_error(f"Failed to start logs: {exc}")
        else:
            logger.info("Sent start_logs request for %s", self._container)
            self._emit(EntryKind.STREAM_STARTED, f"Log streaming started for {self._container}")

        self._reader_task = self._watch(asyncio.create_task(self._read_loop(transport, epoch)))

    def _schedule_reconnect(self, epoch: int) -> None:
        max_attempts = self._policy.max_attempts
        if self._policy.should_give_up(self._attempts):
            self._report_error(f"Failed to reconnect after {max_attempts} attempts")
            self._set_state(ConnectionState.STOPPED)
            return

        self._attempts += 1
        delay = self._policy.next_delay(self._attempts)
        self._emit(
            EntryKind.SYSTEM,
            f"Connection lost. Reconnecting in {int(delay + 0.5)} seconds... "
            f"(Attempt {self._attempts}/{max_attempts})",
        )
        self._set_state(ConnectionState.RECONNECTING)

        self._cancel_reconnect()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._fire_reconnect, epoch)

    def _fire_reconnect(self, epoch: int) -> None:
        self._reconnect_handle = None
        if epoch != self._epoch or self._user_stopped:
            return
        self._reconnect_task = self._watch(asyncio.create_task(self._reconnect(epoch)))

    async def _reconnect(self, epoch: int) -> None:
        async with self._lock:
            if epoch != self._epoch or self._user_stopped:
                return
            if self._state is not ConnectionState.RECONNECTING:
                return
            await self._connect(epoch)

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # -- inbound events -----------------------------------------------------

    async def _read_loop(self, transport: Transport, epoch: int) -> None:
        try:
            while True:
                frame = await transport.receive()
                await self._on_frame(transport, epoch, frame)
        except TransportClosed as exc:
            await self._on_closed(transport, epoch, exc.code, exc.reason)
        except TransportError as exc:
            await self._on_closed(transport, epoch, ABNORMAL_CLOSURE, str(exc))

    def _is_current(self, transport: Transport, epoch: int) -> bool:
        return epoch == self._epoch and transport is self._transport

    async def _on_frame(self, transport: Transport, epoch: int, frame: str) -> None:
        async with self._lock:
            if not self._is_current(transport, epoch):
                return
            try:
                entry = classify_frame(frame)
            except ParseError as exc:
                logger.warning("Error parsing log message: %s", exc)
                self._report_error(f"Failed to parse log message: {exc}")
                return
            self._append(entry)

    async def _on_closed(self, transport: Transport, epoch: int, code: int, reason: str) -> None:
        async with self._lock:
            if not self._is_current(transport, epoch):
                return
            self._transport = None
            self._reader_task = None
            logger.info("WebSocket closed: %s - %s", code, reason or "No reason provided")

            if self._user_stopped or code == NORMAL_CLOSURE:
                logger.info("Not reconnecting due to intentional closure or normal close code")
                self._set_state(ConnectionState.STOPPED)
                self._emit(EntryKind.STREAM_STOPPED, "Log stream closed by server")
                return

            self._report_error(
                f"Connection closed unexpectedly (code {code}: {reason or 'No reason provided'})"
            )
            self._schedule_reconnect(epoch)

    # -- helpers ------------------------------------------------------------

    def _watch(self, task: asyncio.Task[None]) -> asyncio.Task[None]:
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        logger.error("Log stream task for %s failed", self._container, exc_info=exc)
        self._abort_task = asyncio.get_running_loop().create_task(self._abort(task, exc))

    async def _abort(self, failed: asyncio.Task[None], exc: BaseException) -> None:
        """Tear the stream down after a reader or reconnect task crashed."""
        async with self._lock:
            if self._state not in _ACTIVE_STATES:
                return
            self._epoch += 1
            self._cancel_reconnect()
            transport, self._transport = self._transport, None
            reader, self._reader_task = self._reader_task, None

            if reader is not None and reader is not failed:
                reader.cancel()
                await asyncio.gather(reader, return_exceptions=True)
            if transport is not None:
                await self._close_quietly(transport, INTERNAL_ERROR, "Client error")

            self._report_error(f"Log stream failed unexpectedly: {exc}")
            self._set_state(ConnectionState.STOPPED)

    async def _close_quietly(
        self, transport: Transport, code: int = NORMAL_CLOSURE, reason: str = "User stopped logging"
    ) -> None:
        try:
            await transport.close(code, reason)
        except TransportError as exc:
            logger.debug("Error closing abandoned socket: %s", exc)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.debug("%s: %s -> %s", self._container, self._state.value, state.value)
        self._state = state
        if state is ConnectionState.STOPPED:
            self._stopped.set()
        else:
            self._stopped.clear()
        if self._on_state is not None:
            try:
                self._on_state(state)
            except Exception:
                logger.exception("on_state callback failed for %s", self._container)

    def _append(self, entry: LogEntry) -> None:
        if entry.kind is EntryKind.ERROR:
            self.last_error = entry.message
        self._buffer.append(entry)
        if self._on_entry is not None:
            try:
                self._on_entry(entry)
            except Exception:
                logger.exception("on_entry callback failed for %s", self._container)

    def _emit(self, kind: EntryKind, message: str) -> None:
        self._append(make_entry(kind, message))

    def _report_error(self, message: str) -> None:
        self._emit(EntryKind.ERROR, message)
