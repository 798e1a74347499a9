from __future__ import annotations

import asyncio
import math

from pointer_relay.producer import ConnectionManager, ConnectionState, OutboundQueue
from pointer_relay.errors import ConnectFailure, SendFailure
from pointer_relay.producer.connection import Closed

from conftest import FakeConnector, ManualScheduler, settle


def _manager(queue: OutboundQueue, connector: FakeConnector, scheduler: ManualScheduler, delay: float = 3.0):
    return ConnectionManager(
        "ws://relay.test:8080",
        queue,
        reconnect_delay=delay,
        connector=connector,
        scheduler=scheduler,
    )


async def _stop(manager: ConnectionManager, runner: asyncio.Task) -> None:
    await manager.aclose()
    runner.cancel()
    await asyncio.gather(runner, return_exceptions=True)


def test_connects_and_drains_in_fifo_order(connector, scheduler) -> None:
    queue = OutboundQueue()
    for i in range(5):
        queue.put(f"m{i}")

    async def scenario():
        manager = _manager(queue, connector, scheduler)
        assert manager.state is ConnectionState.DISCONNECTED
        runner = asyncio.create_task(manager.run())
        await settle()
        assert manager.state is ConnectionState.CONNECTED
        while await manager.drain_once():
            pass
        # empty queue: the drain step does nothing
        assert not await manager.drain_once()
        sent = manager.sent
        await _stop(manager, runner)
        return sent

    sent = asyncio.run(scenario())
    assert sent == 5
    assert connector.transports[0].sent == [f"m{i}" for i in range(5)]


def test_nothing_is_sent_while_disconnected(connector, scheduler) -> None:
    connector.refuse = True
    queue = OutboundQueue()
    queue.put("m0")

    async def scenario():
        manager = _manager(queue, connector, scheduler)
        runner = asyncio.create_task(manager.run())
        await settle()
        assert manager.state is ConnectionState.DISCONNECTED
        assert not await manager.drain_once()
        await _stop(manager, runner)

    asyncio.run(scenario())
    assert len(queue) == 1


def test_connect_failure_schedules_exactly_one_retry(connector, scheduler) -> None:
    connector.refuse = True

    async def scenario():
        manager = _manager(queue=OutboundQueue(), connector=connector, scheduler=scheduler)
        runner = asyncio.create_task(manager.run())
        await settle()
        assert manager.state is ConnectionState.DISCONNECTED
        assert len(scheduler.pending) == 1
        assert scheduler.pending[0].due == 3.0
        assert isinstance(manager.last_error, ConnectFailure)
        assert isinstance(manager.last_error.__cause__, ConnectionRefusedError)

        scheduler.advance(2.9)
        await settle()
        assert connector.calls == 1

        scheduler.advance(0.2)
        await settle()
        assert connector.calls == 2
        assert len(scheduler.pending) == 1
        await _stop(manager, runner)

    asyncio.run(scenario())


def test_send_failure_drops_message_and_reconnects(connector, scheduler) -> None:
    queue = OutboundQueue()
    for m in ("m0", "m1", "m2"):
        queue.put(m)

    async def scenario():
        manager = _manager(queue, connector, scheduler)
        runner = asyncio.create_task(manager.run())
        await settle()
        first = connector.transports[0]

        assert await manager.drain_once()
        first.fail_sends = True
        assert not await manager.drain_once()

        # the popped message is gone, the rest stays queued
        assert manager.state is ConnectionState.DISCONNECTED
        assert manager.dropped == 1
        assert len(queue) == 1
        assert isinstance(manager.last_error, SendFailure)
        assert isinstance(manager.last_error.__cause__, ConnectionResetError)
        await settle()
        assert first.closed
        assert len(scheduler.pending) == 1  # the close that follows is not a second failure

        scheduler.advance(3.0)
        await settle()
        assert manager.state is ConnectionState.CONNECTED
        while await manager.drain_once():
            pass
        await _stop(manager, runner)
        return first

    first = asyncio.run(scenario())
    assert first.sent == ["m0"]
    assert connector.transports[1].sent == ["m2"]


def test_peer_close_and_transport_error_both_reconnect(connector, scheduler) -> None:
    async def scenario():
        manager = _manager(OutboundQueue(), connector, scheduler)
        runner = asyncio.create_task(manager.run())
        await settle()
        assert manager.connected

        connector.transports[0].drop()
        await settle()
        assert manager.state is ConnectionState.DISCONNECTED
        scheduler.advance(3.0)
        await settle()
        assert manager.connected

        connector.transports[1].fail(ConnectionResetError("reset"))
        await settle()
        assert manager.state is ConnectionState.DISCONNECTED
        scheduler.advance(3.0)
        await settle()
        assert manager.connected
        attempts = manager.attempts
        await _stop(manager, runner)
        return attempts

    assert asyncio.run(scenario()) == 3


def test_stale_events_from_an_old_connection_are_ignored(connector, scheduler) -> None:
    async def scenario():
        manager = _manager(OutboundQueue(), connector, scheduler)
        runner = asyncio.create_task(manager.run())
        await settle()
        connector.transports[0].drop()
        await settle()
        scheduler.advance(3.0)
        await settle()
        assert manager.connected

        # a late close from the first connection must not tear down the second
        manager._apply(Closed(generation=1, reason="late"))
        assert manager.connected
        assert scheduler.pending == []
        await _stop(manager, runner)

    asyncio.run(scenario())


def test_reconnect_liveness_with_fixed_delay(connector, scheduler) -> None:
    delay = 3.0
    reachable_after = 7.0
    connector.reachable_at = reachable_after

    async def scenario():
        manager = _manager(OutboundQueue(), connector, scheduler, delay=delay)
        runner = asyncio.create_task(manager.run())
        await settle()
        while manager.state is not ConnectionState.CONNECTED:
            assert len(scheduler.pending) == 1
            scheduler.advance(0.5)
            await settle()
            assert scheduler.now < 60
        connected_at = scheduler.now
        await _stop(manager, runner)
        return connected_at

    connected_at = asyncio.run(scenario())
    assert connected_at <= delay * math.ceil(reachable_after / delay) + 0.5
    assert connector.calls == 4  # t = 0, 3, 6, 9


def test_aclose_cancels_pending_retry_and_closes_transport(connector, scheduler) -> None:
    async def scenario():
        manager = _manager(OutboundQueue(), connector, scheduler)
        runner = asyncio.create_task(manager.run())
        await settle()
        transport = connector.transports[0]
        transport.drop()
        await settle()
        assert len(scheduler.pending) == 1

        await _stop(manager, runner)
        scheduler.advance(30.0)
        await settle()
        return transport

    transport = asyncio.run(scenario())
    assert connector.calls == 1
    assert transport.closed


def test_context_manager_closes_open_connection(connector, scheduler) -> None:
    async def scenario():
        async with _manager(OutboundQueue(), connector, scheduler) as manager:
            runner = asyncio.create_task(manager.run())
            await settle()
            assert manager.connected
        assert manager.state is ConnectionState.DISCONNECTED
        runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)

    asyncio.run(scenario())
    assert connector.transports[0].closed
    assert connector.calls == 1
