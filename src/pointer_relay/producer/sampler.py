from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable

from pointer_relay.protocol import PositionSample, now_ms
from pointer_relay.protocol.constants import MAX_DEBUG_POINTS, MIN_DISTANCE_PX, SEND_INTERVAL_S

from .outbound import OutboundQueue
from .pointer import PointerSource
from .throttle import DistanceThrottle

logger = logging.getLogger(__name__)


class Sampler:
    """
    Polls a pointer source and queues a sample whenever it moved far enough.

    The interval only bounds how often the check runs; a still pointer emits
    nothing. Never touches the network.
    """

    def __init__(
        self,
        source: PointerSource,
        queue: OutboundQueue,
        *,
        min_distance: float = MIN_DISTANCE_PX,
        max_debug_points: int = MAX_DEBUG_POINTS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.source = source
        self.queue = queue
        self.throttle = DistanceThrottle(min_distance)
        self.clock = clock
        # presentation only: recent accepted positions for a local preview
        self.trail: deque[tuple[float, float]] = deque(maxlen=max(1, max_debug_points))
        self.accepted = 0

    def prime(self) -> None:
        x, y = self.source.position()
        self.throttle.prime(x, y)

    def tick(self) -> PositionSample | None:
        x, y = self.source.position()
        if not self.throttle.accept(x, y):
            return None
        w, h = self.source.screen_size()
        sample = PositionSample(x=x, y=y, screen_width=w, screen_height=h, timestamp=self.clock())
        self.queue.put(sample.to_wire())
        self.trail.append((x, y))
        self.accepted += 1
        if len(self.queue) % 10 == 0:
            logger.debug("Queue size: %d", len(self.queue))
        return sample

    async def run(self, interval: float = SEND_INTERVAL_S) -> None:
        logger.info("Sampling pointer every %.3fs", interval)
        self.prime()
        while True:
            self.tick()
            await asyncio.sleep(interval)
