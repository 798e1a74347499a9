from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from pointer_relay.protocol import PositionSample


async def settle(rounds: int = 20) -> None:
    """Let pending tasks and callbacks on the running loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[str] = []
        self.fail_sends = False
        self.closed = False
        self._error: Exception | None = None
        self._ended = asyncio.Event()

    async def send(self, message: str) -> None:
        if self.fail_sends or self.closed:
            raise ConnectionResetError("connection reset by peer")
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._ended.set()

    def drop(self) -> None:
        """Peer closes the connection cleanly."""
        self._ended.set()

    def fail(self, error: Exception) -> None:
        """Connection dies with an error."""
        self._error = error
        self._ended.set()

    def __aiter__(self):
        return self._incoming()

    async def _incoming(self):
        await self._ended.wait()
        if self._error is not None:
            raise self._error
        return
        yield  # pragma: no cover


class FakeConnector:
    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self.clock = clock
        self.reachable_at: float | None = None
        self.refuse = False
        self.calls = 0
        self.transports: list[FakeTransport] = []

    async def __call__(self, url: str) -> FakeTransport:
        self.calls += 1
        if self.refuse:
            raise ConnectionRefusedError(f"refused: {url}")
        if self.reachable_at is not None and self.clock is not None and self.clock() < self.reachable_at:
            raise ConnectionRefusedError(f"refused: {url}")
        t = FakeTransport()
        self.transports.append(t)
        return t


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timers that only fire when the test advances the clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, dt: float) -> None:
        end = self.now + dt
        while True:
            due = sorted((t for t in self.pending if t.due <= end), key=lambda t: t.due)
            if not due:
                break
            timer = due[0]
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = end


def make_sample(x: float = 100.0, y: float = 200.0, w: int = 1920, h: int = 1080, ts: int = 1) -> PositionSample:
    return PositionSample(x=x, y=y, screen_width=w, screen_height=h, timestamp=ts)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def connector(scheduler: ManualScheduler) -> FakeConnector:
    return FakeConnector(clock=lambda: scheduler.now)
