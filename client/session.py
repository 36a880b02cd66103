from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from client.connection import Connection
from client.multiplexer import EventMultiplexer
from client.outbound import OutboundQueue
from shared.commands import Command, Deliver, FetchRequest
from shared.errors import ConfigMissingError, InvalidDataError, NotConnectedError
from shared.log import get_logger
from shared.utils import Address

if TYPE_CHECKING:
    from client.config import ClientConfig

logger = get_logger(__name__)


class Session:
    """
    One chat client: credentials, server address and the connection to it.

    Lifecycle is ``connect`` -> ``login`` -> (``send_message`` / ``fetch_one``
    or ``events``) -> ``close``. A failed login drops the connection, so the
    session is left not connected rather than half logged in.

    Commands put on ``outbound`` are written by the event stream returned from
    ``events()``, in the order they were queued.
    """

    def __init__(
        self,
        username: Optional[str] = None,
        password: Optional[str] = None,
        server_address: Optional[Address] = None,
    ) -> None:
        self.username = username
        self._password = password
        self.server_address = server_address
        self.connection: Optional[Connection] = None
        self.authenticated = False
        self.outbound = OutboundQueue()
        self._closing = False

    @classmethod
    def from_config(cls, config: ClientConfig) -> Session:
        return cls(config.username, config.password, config.address())

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # accessors

    def get_name(self) -> str:
        if self.username is None:
            raise ConfigMissingError("Username not found")
        return self.username

    def _get_password(self) -> str:
        if self._password is None:
            raise ConfigMissingError("Password not found")
        return self._password

    def get_address(self) -> Address:
        if self.server_address is None:
            raise ConfigMissingError("Server address not found")
        return self.server_address

    def _get_connection(self) -> Connection:
        if self.connection is None or self.connection.closed:
            raise NotConnectedError("Not connected to any server")
        return self.connection

    @property
    def is_connected(self) -> bool:
        return self.connection is not None and not self.connection.closed

    def set_password(self, new_password: str) -> None:
        self._password = new_password

    # ------------------------------------------------------------------
    # lifecycle

    async def connect(self) -> None:
        """Open the TCP connection if it is not open yet. Does not authenticate."""
        if self.is_connected:
            return
        address = self.get_address()
        self.connection = await Connection.open(address)
        if self.outbound.closed:
            self.outbound = OutboundQueue()
        self._closing = False

    async def login(self) -> None:
        """
        Authenticate with the server, connecting first when needed.

        On any failure the connection is discarded and the error re-raised:
        PermissionDeniedError (server reason as message), InvalidDataError,
        ConnectFailedError or ConfigMissingError.
        """
        username = self.get_name()
        password = self._get_password()
        await self.connect()
        try:
            await self._get_connection().login(username, password)
        except BaseException:
            await self._discard_connection()
            raise
        self.authenticated = True

    async def close(self) -> None:
        """
        Close the session. A running event stream ends cleanly instead of
        reporting the interrupted read as an error.
        """
        self._closing = True
        self.outbound.close()
        await self._discard_connection()

    async def _discard_connection(self) -> None:
        connection, self.connection = self.connection, None
        self.authenticated = False
        if connection is not None:
            await connection.close()

    # ------------------------------------------------------------------
    # operations

    async def send_message(self, target: str, body: str) -> None:
        """Write one Deliver frame from this user to ``target``."""
        sender = self.get_name()
        await self._get_connection().send_command(Deliver(sender, target, body))

    async def fetch_one(self) -> Command:
        """
        Ask the server for one pending message and wait for its reply.

        Returns the reply as is: a Deliver addressed to this user, or End when
        nothing is pending. Do not call while an event stream is running.
        """
        connection = self._get_connection()
        await connection.send_command(FetchRequest())
        reply = await connection.receive_one_frame()
        if isinstance(reply, Deliver) and reply.target != self.get_name():
            raise InvalidDataError(
                "Invalid message format, unable to get correct receiver"
            )
        return reply

    def events(self) -> EventMultiplexer:
        """The session's event stream: queued commands as they are written, and frames as they arrive."""
        return EventMultiplexer(self._get_connection(), self.outbound, closing=lambda: self._closing)
