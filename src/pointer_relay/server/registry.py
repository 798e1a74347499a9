from __future__ import annotations

import logging
from typing import Protocol

from pointer_relay.errors import BroadcastSendFailure

logger = logging.getLogger(__name__)


class Client(Protocol):
    async def send_text(self, data: str) -> None: ...

    async def send_bytes(self, data: bytes) -> None: ...


class ClientRegistry:
    """
    Connections currently open on one relay.

    One instance per app, mutated only from the event loop (no lock). The
    relay knows nothing about a client beyond its connection object.
    """

    def __init__(self) -> None:
        self._clients: set[Client] = set()

    def add(self, client: Client) -> None:
        self._clients.add(client)

    def discard(self, client: Client) -> None:
        self._clients.discard(client)

    def snapshot(self) -> list[Client]:
        return list(self._clients)

    def __contains__(self, client: object) -> bool:
        return client in self._clients

    def __len__(self) -> int:
        return len(self._clients)


async def _deliver(client: Client, message: str | bytes) -> None:
    try:
        if isinstance(message, bytes):
            await client.send_bytes(message)
        else:
            await client.send_text(message)
    except Exception as e:
        # a destination closing mid-broadcast surfaces as anything from
        # RuntimeError to WebSocketDisconnect; none of it is fatal here
        raise BroadcastSendFailure(f"send to {client!r} failed") from e


async def broadcast(registry: ClientRegistry, message: str | bytes, *, exclude: Client | None = None) -> int:
    """
    Send `message` unchanged to every registered client except `exclude`.

    Best-effort per destination: a failed send is logged and skipped. Returns
    the number of clients the message reached.
    """
    delivered = 0
    for client in registry.snapshot():
        if client is exclude:
            continue
        try:
            await _deliver(client, message)
        except BroadcastSendFailure as e:
            logger.warning("%s: %r", e, e.__cause__)
            continue
        delivered += 1
    return delivered
