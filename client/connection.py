from __future__ import annotations

import asyncio
from typing import Optional

from shared.codec import PACKET_SIZE, decode, encode
from shared.commands import Ack, Command, Failure, Login
from shared.errors import (
    CodecError,
    ConfigMissingError,
    ConnectFailedError,
    ConnectionClosedError,
    InvalidDataError,
    NotConnectedError,
    PermissionDeniedError,
)
from shared.log import get_logger, log_command
from shared.utils import Address, format_address

logger = get_logger(__name__)


class Connection:
    """
    Wrapper around one TCP stream pair speaking fixed-size frames.

    The reader and writer are the two halves of the socket; each half has its
    own lock so a pending read never interleaves with another read, and
    frames from concurrent writers never interleave on the wire.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, peer: str) -> None:
        self.reader = reader
        self.writer = writer
        self.peer = peer
        self._read_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def open(cls, address: Address) -> Connection:
        """Open a TCP connection to the server. Does not authenticate."""
        peer = format_address(address)
        try:
            reader, writer = await asyncio.open_connection(*address)
        except OSError as e:
            logger.warning("Cannot connect: %s", e, extra={"peer": peer})
            raise ConnectFailedError(f"Cannot connect to {peer}: {e}") from e
        logger.info("Connected", extra={"peer": peer})
        return cls(reader, writer, peer)

    @property
    def closed(self) -> bool:
        return self._closed

    async def login(self, username: Optional[str], password: Optional[str]) -> None:
        """
        Run the login handshake: one Login frame out, one reply frame in.

        Raises:
            ConfigMissingError: username or password is None
            PermissionDeniedError: server replied Failure; str() is its reason
            InvalidDataError: server replied with anything else
            ConnectFailedError: no decodable reply arrived
        """
        if username is None:
            raise ConfigMissingError("Username not found")
        if password is None:
            raise ConfigMissingError("Password not found")

        await self.send_command(Login(username, password))

        try:
            frame = await self.read_frame()
        except ConnectionClosedError as e:
            raise ConnectFailedError("Cannot get a response from the server") from e
        if frame is None:
            raise ConnectFailedError("Cannot get a response from the server")
        try:
            reply = decode(frame)
        except CodecError as e:
            raise ConnectFailedError("Cannot get a response from the server") from e

        if isinstance(reply, Ack):
            logger.info("Logged in", extra={"user": username, "peer": self.peer})
            return
        if isinstance(reply, Failure):
            logger.warning("Login rejected: %s", reply.reason, extra={"user": username, "peer": self.peer})
            raise PermissionDeniedError(reply.reason)
        raise InvalidDataError(f"Unexpected command during login: {reply.type.value}")

    async def send_command(self, cmd: Command) -> None:
        """Encode and write exactly one frame."""
        frame = encode(cmd)
        async with self._write_lock:
            if self._closed:
                raise NotConnectedError("Not connected to any server")
            try:
                self.writer.write(frame)
                await self.writer.drain()
            except OSError as e:
                raise ConnectionClosedError(f"Write to {self.peer} failed: {e}") from e
        log_command(logger, "debug", "Sent frame", command=cmd, peer=self.peer)

    async def read_frame(self) -> Optional[bytes]:
        """
        Read exactly one frame.

        Returns None when the peer closed the connection before sending any
        byte of the frame. A frame cut short by the peer is an error.
        """
        async with self._read_lock:
            if self._closed and self.reader.at_eof():
                return None
            try:
                return await self.reader.readexactly(PACKET_SIZE)
            except asyncio.IncompleteReadError as e:
                if not e.partial:
                    logger.debug("Peer closed the connection", extra={"peer": self.peer})
                    return None
                raise ConnectionClosedError(
                    f"Connection closed mid-frame after {len(e.partial)} of {PACKET_SIZE} bytes"
                ) from e
            except OSError as e:
                raise ConnectionClosedError(f"Read from {self.peer} failed: {e}") from e

    async def receive_one_frame(self) -> Command:
        """Read and decode one frame. Codec errors propagate as they are."""
        if self._closed:
            raise NotConnectedError("Not connected to any server")
        frame = await self.read_frame()
        if frame is None:
            raise ConnectionClosedError(f"Connection closed by {self.peer}")
        cmd = decode(frame)
        log_command(logger, "debug", "Received frame", command=cmd, peer=self.peer)
        return cmd

    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        transport = self.writer.transport
        if transport.get_write_buffer_size():
            # a peer that stopped reading would keep close() waiting on the flush
            transport.abort()
        else:
            self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing: %s", e, extra={"peer": self.peer})
        logger.info("Connection closed", extra={"peer": self.peer})
