# palcon/errors.py
from __future__ import annotations


class PalconError(Exception):
    """Base class for everything the RCON client raises."""

    message = "RCON error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class TransportError(PalconError):
    """Underlying socket failure: connect, write, read or reset."""

    def __init__(self, error: OSError):
        self.error = error
        super().__init__(f"IO error: {error}")


class DecodeError(PalconError):
    def __init__(self, error: UnicodeDecodeError):
        self.error = error
        super().__init__(f"UTF8 error: {error}")


class ReadTimeout(PalconError):
    message = "Read timed out"


class FailedToReadResponse(PalconError):
    message = "Failed to read response"


class ConnectionEnded(PalconError):
    """The peer closed the stream (zero-byte read)."""

    message = "Ended connection"


class AuthenticationError(PalconError):
    message = "Failed to authenticate"


class AlreadyAuthenticated(PalconError):
    message = "Already authenticated"


class ConnectionDesynchronized(PalconError):
    """An earlier read timed out; late bytes may still be in flight."""

    message = "Connection desynchronized by an earlier timeout"
