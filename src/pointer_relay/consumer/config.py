from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from pointer_relay.protocol.constants import (
    DECAY_STEP,
    DEFAULT_SERVER_URL,
    FRAME_INTERVAL_S,
    RECONNECT_DELAY_S,
    VISIBILITY_FLOOR,
)


class ConsumerSettings(BaseSettings):
    """Runtime config (consumer). Environment variables use the `POINTER_CONSUMER_` prefix."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="POINTER_CONSUMER_", extra="ignore")

    server_url: str = DEFAULT_SERVER_URL
    reconnect_delay: float = RECONNECT_DELAY_S
    frame_interval: float = FRAME_INTERVAL_S

    # Trail fading
    decay_step: float = DECAY_STEP
    visibility_floor: float = VISIBILITY_FLOOR

    # Local canvas the trail is mapped onto
    canvas_width: int = 1280
    canvas_height: int = 720

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> ConsumerSettings:
    return ConsumerSettings()
