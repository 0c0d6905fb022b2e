# palcon/codec.py
"""
Wire format, all integers signed 32-bit little-endian:

    length | sequence id | type | payload (utf-8) | \\x00\\x00

The request length field counts the payload bytes only. Palworld accepts
that, and it is what the server was tested against, even though other
Source-RCON servers expect the id and type fields to be included.
"""
from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

from .errors import DecodeError, FailedToReadResponse

HEADER = struct.Struct("<iii")  # length, sequence id, type
HEADER_SIZE = HEADER.size
TERMINATOR = b"\x00\x00"
SEQUENCE_ID = 0  # palworld neither uses nor checks it

AUTH_SUCCESS = 2


class PacketType(enum.IntEnum):
    AUTH = 3
    COMMAND = 2
    KEEPALIVE = -1


@dataclass(frozen=True, slots=True)
class Response:
    """
    One decoded server reply.

    `size` is whatever the server put in the length field; it is not checked
    against the bytes actually received. `response_type` has no agreed meaning
    for command replies on palworld and can usually be ignored.
    """

    size: int
    response_type: int
    payload: str


def encode(packet_type: int, payload: str) -> bytes:
    body = payload.encode("utf-8")
    return HEADER.pack(len(body), SEQUENCE_ID, int(packet_type)) + body + TERMINATOR


def decode(buffer: bytes, strict: bool = False) -> Response:
    """
    Parse one reply. The payload runs up to the first null byte, or to the end
    of the buffer if there is none. Invalid UTF-8 yields an empty payload
    unless `strict` is set, in which case DecodeError is raised.
    """
    if len(buffer) < HEADER_SIZE:
        raise FailedToReadResponse()
    size, _seq, response_type = HEADER.unpack_from(buffer)
    rest = bytes(buffer[HEADER_SIZE:])
    end = rest.find(b"\x00")
    raw = rest if end < 0 else rest[:end]
    try:
        payload = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        if strict:
            raise DecodeError(e) from e
        payload = ""
    return Response(size=size, response_type=response_type, payload=payload)
