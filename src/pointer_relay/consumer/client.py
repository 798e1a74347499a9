from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

import websockets
from websockets.exceptions import WebSocketException

from .config import ConsumerSettings
from .decay import DecayBuffer

logger = logging.getLogger(__name__)


async def receive_forever(url: str, buffer: DecayBuffer, *, reconnect_delay: float) -> None:
    """Feed every inbound message into `buffer`, reconnecting after a fixed delay."""
    while True:
        try:
            async with websockets.connect(url, ping_interval=20, ping_timeout=20, max_size=2**16) as ws:
                logger.info("Connected to %s", url)
                async for raw in ws:
                    buffer.receive(raw)
            logger.info("Disconnected from %s", url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("Connection to %s failed: %r", url, e)
        logger.info("Reconnecting in %.1fs", reconnect_delay)
        await asyncio.sleep(reconnect_delay)


async def run_consumer(
    settings: ConsumerSettings,
    buffer: DecayBuffer,
    *,
    on_frame: Optional[Callable[[DecayBuffer], None]] = None,
) -> None:
    """Receive in the background and tick the buffer at the frame rate until cancelled."""
    receiver = asyncio.create_task(
        receive_forever(settings.server_url, buffer, reconnect_delay=settings.reconnect_delay)
    )
    try:
        while True:
            buffer.tick()
            if on_frame is not None:
                on_frame(buffer)
            await asyncio.sleep(settings.frame_interval)
    finally:
        receiver.cancel()
        await asyncio.gather(receiver, return_exceptions=True)
