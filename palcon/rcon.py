# palcon/rcon.py
from __future__ import annotations

import asyncio
import contextlib
import enum
import errno
import logging
from typing import Optional

from .codec import AUTH_SUCCESS, PacketType, Response, decode, encode
from .errors import (
    AlreadyAuthenticated,
    AuthenticationError,
    ConnectionDesynchronized,
    ConnectionEnded,
    ReadTimeout,
    TransportError,
)
from .util import parse_address

log = logging.getLogger(__name__)

READ_TIMEOUT = 5.0  # seconds, per read
BUFFER_SIZE = 4096  # one read, longer replies are truncated


class ConnectionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class ServerConnection:
    """
    One RCON session over a TCP stream.

    Every call is a full write/read cycle, so a connection must only be driven
    by one task at a time; wrap it in an asyncio.Lock if several tasks share it.
    After a read timeout the stream may still deliver the late reply, so the
    connection refuses further use and a new one has to be opened.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        timeout: float = READ_TIMEOUT,
        buffer_size: int = BUFFER_SIZE,
        strict: bool = False,
    ):
        self.reader = reader
        self.writer = writer
        self.timeout = timeout
        self.buffer_size = buffer_size
        self.strict = strict
        self.state = ConnectionState.UNAUTHENTICATED
        self.desynchronized = False

    @classmethod
    async def connect(
        cls,
        address: str,
        *,
        timeout: float = READ_TIMEOUT,
        buffer_size: int = BUFFER_SIZE,
        strict: bool = False,
    ) -> "ServerConnection":
        try:
            host, port = parse_address(address)
        except ValueError as e:
            # unparsable address is an invalid-argument I/O error, like a DNS failure
            raise TransportError(OSError(errno.EINVAL, str(e))) from e
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            raise TransportError(e) from e
        log.debug("connected to %s:%d", host, port)
        return cls(reader, writer, timeout=timeout, buffer_size=buffer_size, strict=strict)

    @property
    def authenticated(self) -> bool:
        return self.state is ConnectionState.AUTHENTICATED

    async def authenticate(self, password: str) -> None:
        if self.authenticated:
            raise AlreadyAuthenticated()
        response = await self._send_and_read(PacketType.AUTH, password)
        if response.response_type != AUTH_SUCCESS:
            raise AuthenticationError()
        self.state = ConnectionState.AUTHENTICATED

    async def run_command(self, command: str) -> Response:
        return await self._send_and_read(PacketType.COMMAND, command)

    async def ping(self) -> None:
        """Keepalive: any reply before the timeout counts as success."""
        await self._send_and_read(PacketType.KEEPALIVE, "")

    async def close(self) -> None:
        self.writer.close()
        # already reset by the peer means nothing is left to release
        with contextlib.suppress(OSError):
            await self.writer.wait_closed()

    async def __aenter__(self) -> "ServerConnection":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # ── internals ──────────────────────────────────────────────────────────

    async def _send_and_read(self, packet_type: PacketType, payload: str) -> Response:
        if self.desynchronized:
            raise ConnectionDesynchronized()
        await self._send_packet(packet_type, payload)
        return await self._read_response()

    async def _send_packet(self, packet_type: PacketType, payload: str) -> None:
        packet = encode(packet_type, payload)
        try:
            self.writer.write(packet)
            await self.writer.drain()
        except OSError as e:
            if self.reader.at_eof():
                # peer already closed cleanly; the write only noticed it
                raise ConnectionEnded() from e
            raise TransportError(e) from e
        # payload not logged, it may be the password
        log.debug("sent %s frame, %d bytes", packet_type.name, len(packet))

    async def _read_response(self) -> Response:
        try:
            data = await asyncio.wait_for(self.reader.read(self.buffer_size), self.timeout)
        except asyncio.TimeoutError:
            self.desynchronized = True
            raise ReadTimeout() from None
        except OSError as e:
            raise TransportError(e) from e
        if not data:
            raise ConnectionEnded()
        response = decode(data, strict=self.strict)
        log.debug(
            "received %d bytes: size=%d type=%d",
            len(data),
            response.size,
            response.response_type,
        )
        return response


async def connect(
    address: str,
    *,
    timeout: float = READ_TIMEOUT,
    buffer_size: int = BUFFER_SIZE,
    strict: bool = False,
) -> ServerConnection:
    return await ServerConnection.connect(
        address, timeout=timeout, buffer_size=buffer_size, strict=strict
    )


async def open_session(
    address: str,
    password: str,
    *,
    timeout: Optional[float] = None,
) -> ServerConnection:
    """Connect and authenticate; the socket is closed again if either step fails."""
    conn = await connect(address, timeout=READ_TIMEOUT if timeout is None else timeout)
    try:
        await conn.authenticate(password)
    except BaseException:
        await conn.close()
        raise
    return conn
