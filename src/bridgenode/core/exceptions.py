"""Custom exceptions for BridgeNode."""
from typing import Optional


class BridgeNodeException(Exception):
    """Base exception for all BridgeNode-specific exceptions."""

    pass


class InvalidStateTransitionError(BridgeNodeException):
    """Raised when attempting an invalid supervisor state transition."""

    pass


class SpawnError(BridgeNodeException):
    """Raised when the worker process cannot be launched."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to launch worker '{path}': {reason}")


class ProtocolParseError(BridgeNodeException):
    """
    Raised when the worker emits output that cannot be parsed.

    Attributes:
        parser: True if the data failed structured (JSON) parsing,
            False if it parsed but is not a usable envelope
        raw: The raw bytes received from the worker
    """

    def __init__(self, message: str, raw: bytes = b"", parser: bool = True):
        self.raw = raw
        self.parser = parser
        super().__init__(message)


class ChannelBusyError(BridgeNodeException):
    """Raised when a second job is submitted on a one-shot request channel."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "A job has already been submitted on this channel")
