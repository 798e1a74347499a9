from __future__ import annotations

import math


class DistanceThrottle:
    """Accept a position only once it moved more than `min_distance` from the last accepted one."""

    def __init__(self, min_distance: float) -> None:
        if min_distance < 0:
            raise ValueError("min_distance must be >= 0")
        self.min_distance = float(min_distance)
        self.last: tuple[float, float] | None = None

    def prime(self, x: float, y: float) -> None:
        self.last = (float(x), float(y))

    def accept(self, x: float, y: float) -> bool:
        if self.last is not None:
            lx, ly = self.last
            if math.hypot(x - lx, y - ly) <= self.min_distance:
                return False
        self.last = (float(x), float(y))
        return True
