from .app import create_app
from .registry import ClientRegistry, broadcast

__all__ = ["ClientRegistry", "broadcast", "create_app"]
