"""Stream pointer positions through a websocket relay and render them as a fading trail."""

__version__ = "0.1.0"
