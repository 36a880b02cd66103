import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shared.codec import PACKET_SIZE, decode, encode
from shared.commands import Ack, Command, Login


class FakePeer:
    """Server side of one client connection, speaking whole frames."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, server: "FakeChatServer"):
        self.reader = reader
        self.writer = writer
        self.server = server

    async def recv(self) -> Optional[Command]:
        try:
            frame = await self.reader.readexactly(PACKET_SIZE)
        except asyncio.IncompleteReadError:
            return None
        cmd = decode(frame)
        self.server.received.append(cmd)
        return cmd

    async def send(self, cmd: Command) -> None:
        await self.send_raw(encode(cmd))

    async def send_raw(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError:
            pass

    async def accept_login(self) -> Login:
        login = await self.recv()
        assert isinstance(login, Login)
        await self.send(Ack())
        return login


Handler = Callable[[FakePeer], Awaitable[None]]


class FakeChatServer:
    """Scripted chat server on an ephemeral 127.0.0.1 port."""

    def __init__(self, handler: Handler):
        self.handler = handler
        self.received: List[Command] = []
        self.connections = 0
        self.peers: List[FakePeer] = []
        self.done = asyncio.Event()
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> "FakeChatServer":
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self

    @property
    def address(self):
        host, port = self._server.sockets[0].getsockname()[:2]
        return host, port

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        peer = FakePeer(reader, writer, self)
        self.peers.append(peer)
        try:
            await self.handler(peer)
        finally:
            self.done.set()
            await peer.close()

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            for peer in self.peers:
                peer.writer.close()
            await self._server.wait_closed()


@pytest_asyncio.fixture
async def fake_server():
    """Factory: ``server = await fake_server(handler)``; every server is stopped afterwards."""
    servers: List[FakeChatServer] = []

    async def start(handler: Handler) -> FakeChatServer:
        server = await FakeChatServer(handler).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        await server.stop()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep a developer's real config and environment out of the tests."""
    for name in ("TILDECHAT_USERNAME", "TILDECHAT_PASSWORD", "TILDECHAT_SERVER", "TILDECHAT_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    import client.config
    monkeypatch.setattr(client.config, "DEFAULT_CONFIG_PATH", tmp_path / "no-such-config.yaml")
