from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Coroutine, Optional, Protocol, Union

import websockets
from websockets.exceptions import WebSocketException

from pointer_relay.errors import ConnectFailure, SendFailure, TransportError
from pointer_relay.protocol.constants import DRAIN_IDLE_S, RECONNECT_DELAY_S

from .outbound import OutboundQueue
from .scheduler import Cancellable, LoopScheduler, Scheduler

logger = logging.getLogger(__name__)

# Failures the transport layer reports; anything else is a bug and propagates.
TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, WebSocketException)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Transport(Protocol):
    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[Any]: ...


Connector = Callable[[str], Awaitable[Transport]]


async def websocket_connector(url: str) -> Transport:
    return await websockets.connect(url, ping_interval=20, ping_timeout=20, max_size=2**16)


# Transport events. `generation` identifies the connection attempt that
# produced the event; events from an older attempt are ignored.


@dataclass(frozen=True)
class Opened:
    generation: int
    transport: Transport


@dataclass(frozen=True)
class Closed:
    generation: int
    reason: str


@dataclass(frozen=True)
class Error:
    generation: int
    error: Exception


TransportEvent = Union[Opened, Closed, Error]


class ConnectionManager:
    """
    Owns the producer's single outbound connection.

    State changes only happen in `_apply`, fed by `run()` from the event
    channel (and synchronously by `drain_once` on a send failure). Every
    failure moves to DISCONNECTED and schedules exactly one retry after
    `reconnect_delay`; retries never stop and never back off.

    Delivery is at-most-once: a message popped for sending is gone, even if
    the send fails.
    """

    def __init__(
        self,
        url: str,
        queue: OutboundQueue,
        *,
        reconnect_delay: float = RECONNECT_DELAY_S,
        connector: Optional[Connector] = None,
        scheduler: Optional[Scheduler] = None,
        drain_idle: float = DRAIN_IDLE_S,
    ) -> None:
        self.url = url
        self.queue = queue
        self.reconnect_delay = reconnect_delay
        self.drain_idle = drain_idle
        self._connector: Connector = connector or websocket_connector
        self._scheduler: Scheduler = scheduler or LoopScheduler()

        self._state = ConnectionState.DISCONNECTED
        self._generation = 0
        self._transport: Optional[Transport] = None
        self._events: asyncio.Queue[TransportEvent] = asyncio.Queue()
        self._retry: Optional[Cancellable] = None
        self._tasks: set[asyncio.Task] = set()
        self._closing = False

        # counters (status display / tests)
        self.attempts = 0
        self.sent = 0
        self.dropped = 0
        self.last_error: Optional[Exception] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    # -- lifecycle ---------------------------------------------------------

    def connect(self) -> None:
        self._retry = None
        if self._closing or self._state is not ConnectionState.DISCONNECTED:
            return
        self._generation += 1
        self.attempts += 1
        self._state = ConnectionState.CONNECTING
        logger.info("Attempting to connect to %s (attempt %d)", self.url, self.attempts)
        self._spawn(self._open(self._generation))

    async def run(self) -> None:
        """Connect, then consume transport events until cancelled."""
        self.connect()
        while True:
            event = await self._events.get()
            self._apply(event)

    async def aclose(self) -> None:
        self._closing = True
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None
        self._generation += 1
        transport, self._transport = self._transport, None
        self._state = ConnectionState.DISCONNECTED
        if transport is not None:
            logger.info("Closing WebSocket connection")
            await self._close_quietly(transport)
        tasks = [t for t in self._tasks if t is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- queue drain -------------------------------------------------------

    async def drain_once(self) -> bool:
        """Send at most one queued message. Returns True if one was sent."""
        transport = self._transport
        if self._state is not ConnectionState.CONNECTED or transport is None:
            return False
        message = self.queue.pop()
        if message is None:
            return False
        generation = self._generation
        try:
            await self._send(transport, message)
        except SendFailure as e:
            self.dropped += 1
            logger.warning("Error sending message (dropped): %r", e.__cause__)
            self._apply(Error(generation, e))
            return False
        self.sent += 1
        return True

    async def drain_forever(self) -> None:
        logger.info("Starting message queue processor")
        while True:
            if await self.drain_once():
                await asyncio.sleep(0)
            else:
                await asyncio.sleep(self.drain_idle)

    # -- state machine -----------------------------------------------------

    def _apply(self, event: TransportEvent) -> None:
        if event.generation != self._generation:
            if isinstance(event, Opened):
                self._spawn(self._close_quietly(event.transport))
            logger.debug("Ignoring stale %s (generation %d)", type(event).__name__, event.generation)
            return

        if isinstance(event, Opened):
            if self._state is ConnectionState.CONNECTING:
                self._transport = event.transport
                self._state = ConnectionState.CONNECTED
                logger.info("Connected to %s", self.url)
            return

        if self._state is ConnectionState.DISCONNECTED:
            # already torn down by an earlier event of this generation
            return

        if isinstance(event, Closed):
            logger.info("Disconnected from %s: %s", self.url, event.reason)
        else:
            self.last_error = event.error
            logger.warning("Connection to %s failed: %s", self.url, event.error)
        self._disconnect()
        self._schedule_retry()

    def _disconnect(self) -> None:
        transport, self._transport = self._transport, None
        self._state = ConnectionState.DISCONNECTED
        if transport is not None:
            self._spawn(self._close_quietly(transport))

    def _schedule_retry(self) -> None:
        if self._closing:
            return
        logger.info("Reconnecting in %.1fs", self.reconnect_delay)
        self._retry = self._scheduler.call_later(self.reconnect_delay, self.connect)

    # -- transport tasks ---------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _connect(self) -> Transport:
        try:
            return await self._connector(self.url)
        except TRANSPORT_ERRORS as e:
            raise ConnectFailure(f"could not connect: {e!r}") from e

    async def _send(self, transport: Transport, message: str) -> None:
        try:
            await transport.send(message)
        except TRANSPORT_ERRORS as e:
            raise SendFailure("send failed") from e

    async def _receive_all(self, transport: Transport) -> None:
        try:
            async for _ in transport:
                pass
        except TRANSPORT_ERRORS as e:
            raise TransportError(repr(e)) from e

    async def _open(self, generation: int) -> None:
        try:
            transport = await self._connect()
        except ConnectFailure as e:
            self._events.put_nowait(Error(generation, e))
            return
        self._events.put_nowait(Opened(generation, transport))
        await self._watch(generation, transport)

    async def _watch(self, generation: int, transport: Transport) -> None:
        # The relay fans other producers' messages out to us too; read and
        # discard them so the receive buffer never stalls the connection.
        try:
            await self._receive_all(transport)
        except TransportError as e:
            self._events.put_nowait(Error(generation, e))
        else:
            self._events.put_nowait(Closed(generation, "connection closed"))

    async def _close_quietly(self, transport: Transport) -> None:
        try:
            await transport.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("Ignoring error while closing transport: %r", e)
