from __future__ import annotations


class PointerRelayError(Exception):
    """Base class for every failure the relay pipeline recognizes."""


class ConnectFailure(PointerRelayError):
    """The producer's transport could not be opened. Always retried."""


class TransportError(PointerRelayError):
    """The transport failed while connected. Handled like a close."""


class SendFailure(PointerRelayError):
    """A dequeued message could not be transmitted. The message is dropped."""


class ParseFailure(PointerRelayError, ValueError):
    """An inbound payload is not a valid position sample."""


class BroadcastSendFailure(PointerRelayError):
    """The relay could not deliver a message to one destination."""
