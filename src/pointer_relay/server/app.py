from __future__ import annotations

import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from .config import RelaySettings, get_settings
from .registry import ClientRegistry, broadcast

logger = logging.getLogger(__name__)


def create_app(settings: RelaySettings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="pointer-relay")
    app.state.settings = settings
    registry = ClientRegistry()
    app.state.registry = registry

    @app.get("/healthz")
    def healthz():
        return {"ok": True, "clients": len(registry)}

    @app.websocket("/")
    async def relay(ws: WebSocket):
        await ws.accept()
        registry.add(ws)
        peer = getattr(ws.client, "host", None)
        logger.info("Client connected from %s (%d connected)", peer, len(registry))

        try:
            while True:
                msg = await ws.receive()
                if msg["type"] == "websocket.disconnect":
                    break
                # pass-through: text stays text, bytes stay bytes
                data = msg.get("text")
                if data is None:
                    data = msg.get("bytes")
                if data is None:
                    continue
                n = await broadcast(registry, data, exclude=ws)
                if settings.debug_log_msgs:
                    logger.info("relayed %d bytes from %s to %d client(s)", len(data), peer, n)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.warning("Connection from %s failed: %r", peer, e)
        finally:
            registry.discard(ws)
            logger.info("Client disconnected from %s (%d connected)", peer, len(registry))

    return app


app = create_app()
