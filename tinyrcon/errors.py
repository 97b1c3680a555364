# tinyrcon/errors.py
from __future__ import annotations


class RconError(Exception):
    """Base class for everything the client raises."""


class ConfigError(RconError, ValueError):
    pass


class ConnectError(RconError):
    """Dial or authentication failed."""


class CommandError(RconError):
    """The server or transport rejected a command; the connection is still usable."""


class ConnectionClosedError(CommandError):
    """The peer dropped the connection while a command was in flight."""


class SessionTerminatedError(RconError):
    def __init__(self, message: str = "session is terminated") -> None:
        super().__init__(message)


class InputTooLongError(RconError):
    def __init__(self, length: int, limit: int) -> None:
        super().__init__(f"input line of {length} chars exceeds limit of {limit}")
        self.length = length
        self.limit = limit


class ChannelClosedError(RconError):
    def __init__(self, message: str = "read channel data failed") -> None:
        super().__init__(message)
