from __future__ import annotations

from collections import deque


class OutboundQueue:
    """
    FIFO of serialized messages waiting for the connection.

    Owned by one producer. The sampler puts, the connection manager pops; both
    run on the same asyncio loop so no lock is taken. Unbounded: messages pile
    up while disconnected and drain once the connection is back.
    """

    def __init__(self) -> None:
        self._items: deque[str] = deque()

    def put(self, message: str) -> None:
        self._items.append(message)

    def pop(self) -> str | None:
        if not self._items:
            return None
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
