from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence

from pointer_relay.errors import ParseFailure
from pointer_relay.protocol import PositionSample, now_ms
from pointer_relay.protocol.constants import DECAY_STEP, VISIBILITY_FLOOR

logger = logging.getLogger(__name__)


@dataclass
class DecayingPoint:
    x: float
    y: float
    screen_width: int
    screen_height: int
    opacity: float = 1.0
    born_at: int = 0

    def to_canvas(self, width: float, height: float) -> tuple[float, float]:
        """Map from the producer's screen (origin bottom-left) to canvas pixels (origin top-left)."""
        cx = (self.x / self.screen_width) * width
        cy = height - (self.y / self.screen_height) * height
        return (cx, cy)


class DecayBuffer:
    """
    Received points, oldest first, fading by `decay_step` per render tick.

    `receive` may run on a different task or thread than `tick`: new points
    land in an inbox and are merged at the start of the next tick, so the
    render pass never sees the buffer change under it. A point is dropped in
    the same tick its opacity reaches `visibility_floor`, so the buffer never
    holds an invisible point.
    """

    def __init__(
        self,
        decay_step: float = DECAY_STEP,
        visibility_floor: float = VISIBILITY_FLOOR,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if decay_step <= 0:
            raise ValueError("decay_step must be > 0")
        self.decay_step = decay_step
        self.visibility_floor = visibility_floor
        self.clock = clock
        self._inbox: deque[DecayingPoint] = deque()
        self._points: list[DecayingPoint] = []
        self.discarded = 0

    def receive(self, raw: str | bytes) -> bool:
        try:
            sample = PositionSample.from_wire(raw)
        except ParseFailure as e:
            self.discarded += 1
            logger.debug("Discarding message: %s", e)
            return False
        self._inbox.append(
            DecayingPoint(
                x=sample.x,
                y=sample.y,
                screen_width=sample.screen_width,
                screen_height=sample.screen_height,
                born_at=self.clock(),
            )
        )
        return True

    def tick(self) -> None:
        while self._inbox:
            self._points.append(self._inbox.popleft())

        step = self.decay_step
        floor = self.visibility_floor
        kept: list[DecayingPoint] = []
        for p in self._points:
            p.opacity = max(0.0, p.opacity - step)
            if p.opacity > floor:
                kept.append(p)
        self._points = kept

    @property
    def points(self) -> Sequence[DecayingPoint]:
        return tuple(self._points)

    @property
    def pending(self) -> int:
        return len(self._inbox)

    def segments(self) -> Iterator[tuple[DecayingPoint, DecayingPoint]]:
        pts = self._points
        for i in range(1, len(pts)):
            yield pts[i - 1], pts[i]

    def __len__(self) -> int:
        return len(self._points)
