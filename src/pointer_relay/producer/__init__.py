from .connection import ConnectionManager, ConnectionState
from .outbound import OutboundQueue
from .sampler import Sampler
from .throttle import DistanceThrottle

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "DistanceThrottle",
    "OutboundQueue",
    "Sampler",
]
