from __future__ import annotations

import argparse
import asyncio
import contextlib

from pointer_relay.logging_utils import configure_logging

from .config import get_settings
from .pointer import EvdevPointer
from .runner import make_pointer_source, run_producer


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Stream pointer positions to the relay.")
    ap.add_argument("--server", default=settings.server_url, help="Relay URL, e.g. ws://localhost:8080")
    ap.add_argument("--reconnect-delay", type=float, default=settings.reconnect_delay, help="Seconds between reconnect attempts")
    ap.add_argument("--send-interval", type=float, default=settings.send_interval, help="Seconds between pointer checks")
    ap.add_argument("--min-distance", type=float, default=settings.min_distance, help="Pixels the pointer must move before a sample is sent")
    ap.add_argument("--max-debug-points", type=int, default=settings.max_debug_points, help="Recent positions kept for local preview")
    args = ap.parse_args()

    settings = settings.model_copy(
        update={
            "server_url": args.server,
            "reconnect_delay": args.reconnect_delay,
            "send_interval": args.send_interval,
            "min_distance": args.min_distance,
            "max_debug_points": args.max_debug_points,
        }
    )
    configure_logging(settings.log_level)

    source = make_pointer_source(settings)
    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(run_producer(settings, source))
    finally:
        if isinstance(source, EvdevPointer):
            source.stop()


if __name__ == "__main__":
    main()
