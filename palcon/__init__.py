"""Async client for the Palworld flavor of the Source RCON protocol."""

from .codec import AUTH_SUCCESS, PacketType, Response, decode, encode
from .errors import (
    AlreadyAuthenticated,
    AuthenticationError,
    ConnectionDesynchronized,
    ConnectionEnded,
    DecodeError,
    FailedToReadResponse,
    PalconError,
    ReadTimeout,
    TransportError,
)
from .rcon import BUFFER_SIZE, READ_TIMEOUT, ConnectionState, ServerConnection, connect, open_session

__all__ = [
    "AUTH_SUCCESS",
    "BUFFER_SIZE",
    "READ_TIMEOUT",
    "AlreadyAuthenticated",
    "AuthenticationError",
    "ConnectionDesynchronized",
    "ConnectionEnded",
    "ConnectionState",
    "DecodeError",
    "FailedToReadResponse",
    "PacketType",
    "PalconError",
    "ReadTimeout",
    "Response",
    "ServerConnection",
    "TransportError",
    "connect",
    "decode",
    "encode",
    "open_session",
]
