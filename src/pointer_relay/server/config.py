from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from pointer_relay.protocol.constants import DEFAULT_PORT


class RelaySettings(BaseSettings):
    """
    Runtime config (relay).

    - Loaded from environment variables (`POINTER_RELAY_*`)
    - Also reads `.env` if present (via pydantic-settings + python-dotenv)
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="POINTER_RELAY_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    # Debugging: log every relayed message
    debug_log_msgs: bool = False
    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> RelaySettings:
    return RelaySettings()
