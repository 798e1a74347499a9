from .constants import DEFAULT_PORT, DEFAULT_SERVER_URL
from .messages import PositionSample, now_ms

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_SERVER_URL",
    "PositionSample",
    "now_ms",
]
