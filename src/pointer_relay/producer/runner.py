from __future__ import annotations

import asyncio
import logging

from .config import ProducerSettings
from .connection import ConnectionManager, Connector
from .outbound import OutboundQueue
from .pointer import EvdevPointer, OrbitPointer, PointerSource
from .sampler import Sampler

logger = logging.getLogger(__name__)


class ProducerStatus:
    """Periodic one-line summary of the producer (headless preview)."""

    def __init__(self, manager: ConnectionManager, sampler: Sampler) -> None:
        self.manager = manager
        self.sampler = sampler

    def report(self) -> None:
        m = self.manager
        latest = self.sampler.trail[-1] if self.sampler.trail else None
        logger.info(
            "status: %s, queued=%d, sent=%d, dropped=%d, attempts=%d, latest=%s, last_error=%s",
            m.state.value,
            len(self.sampler.queue),
            m.sent,
            m.dropped,
            m.attempts,
            None if latest is None else tuple(round(v, 1) for v in latest),
            m.last_error,
        )

    async def run(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.report()


def make_pointer_source(settings: ProducerSettings) -> PointerSource:
    if settings.pointer_source == "evdev":
        return EvdevPointer(settings.input_device).start()
    return OrbitPointer()


async def run_producer(
    settings: ProducerSettings,
    source: PointerSource,
    *,
    connector: Connector | None = None,
) -> None:
    """Sample, queue and stream positions until cancelled."""
    queue = OutboundQueue()
    sampler = Sampler(
        source,
        queue,
        min_distance=settings.min_distance,
        max_debug_points=settings.max_debug_points,
    )
    logger.info("Producer starting (server=%s)", settings.server_url)
    async with ConnectionManager(
        settings.server_url,
        queue,
        reconnect_delay=settings.reconnect_delay,
        connector=connector,
    ) as manager:
        await asyncio.gather(
            manager.run(),
            manager.drain_forever(),
            sampler.run(settings.send_interval),
            ProducerStatus(manager, sampler).run(settings.status_interval),
        )
