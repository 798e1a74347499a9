from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import time

from pointer_relay.logging_utils import configure_logging

from .client import run_consumer
from .config import get_settings
from .decay import DecayBuffer
from .rendering import render_trail

logger = logging.getLogger(__name__)


class TrailStatus:
    """
    Once a second, render the trail off-screen and log a summary (headless preview).

    The latest frame is kept on `frame` for anything that wants to show it.
    """

    def __init__(self, canvas: tuple[int, int], every_s: float = 1.0) -> None:
        self.canvas = canvas
        self.every_s = every_s
        self._last = 0.0
        self.frame = None

    def __call__(self, buffer: DecayBuffer) -> None:
        now = time.monotonic()
        if now - self._last < self.every_s:
            return
        self._last = now
        newest = buffer.points[-1] if len(buffer) else None
        self.frame = render_trail(buffer.points, self.canvas)
        logger.info(
            "trail: %d point(s), newest=%s, painted=%s, discarded=%d",
            len(buffer),
            None if newest is None else tuple(round(v, 1) for v in newest.to_canvas(*self.canvas)),
            self.frame.getbbox(),
            buffer.discarded,
        )


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Receive pointer positions from the relay and keep a fading trail.")
    ap.add_argument("--server", default=settings.server_url, help="Relay URL, e.g. ws://localhost:8080")
    args = ap.parse_args()

    settings = settings.model_copy(update={"server_url": args.server})
    configure_logging(settings.log_level)

    buffer = DecayBuffer(settings.decay_step, settings.visibility_floor)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_consumer(settings, buffer, on_frame=TrailStatus((settings.canvas_width, settings.canvas_height))))


if __name__ == "__main__":
    main()
