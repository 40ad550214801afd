from __future__ import annotations


class RPSClientError(Exception):
    """Base class for every error raised by the RPS client."""
    pass


class ProtocolError(RPSClientError):
    """Raised when an inbound frame cannot be turned into an event."""
    pass


class MalformedFrameError(ProtocolError):
    """Raised when a frame is not JSON, not an object, or has bad fields."""
    pass


class ConfigError(RPSClientError):
    """Raised when a configuration value is invalid."""
    pass
