from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from pointer_relay.protocol.constants import (
    DEFAULT_SERVER_URL,
    MAX_DEBUG_POINTS,
    MIN_DISTANCE_PX,
    RECONNECT_DELAY_S,
    SEND_INTERVAL_S,
)


class ProducerSettings(BaseSettings):
    """
    Runtime config (producer).

    - Loaded from environment variables (`POINTER_PRODUCER_*`)
    - Also reads `.env` if present
    - CLI flags override individual values
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="POINTER_PRODUCER_", extra="ignore")

    server_url: str = DEFAULT_SERVER_URL
    reconnect_delay: float = RECONNECT_DELAY_S
    send_interval: float = SEND_INTERVAL_S
    min_distance: float = MIN_DISTANCE_PX
    max_debug_points: int = MAX_DEBUG_POINTS  # presentation only
    status_interval: float = 1.0  # seconds between status log lines

    # Where positions come from
    pointer_source: Literal["orbit", "evdev"] = "orbit"
    input_device: str | None = None  # e.g. /dev/input/event2; auto-detected if unset

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> ProducerSettings:
    return ProducerSettings()
