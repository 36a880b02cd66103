from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional, Union

from client.connection import Connection
from client.outbound import OutboundQueue
from shared.codec import decode
from shared.commands import Command
from shared.errors import ChatError
from shared.log import get_logger, log_command

logger = get_logger(__name__)


@dataclass(frozen=True)
class ToSend:
    """A queued command that has just been written to the wire."""
    command: Command


@dataclass(frozen=True)
class Received:
    """A command that has just been decoded from the wire."""
    command: Command


Event = Union[ToSend, Received]


class EventMultiplexer:
    """
    Merge the outbound queue and the socket into one ordered event stream.

    Every step first polls the queue; only when it is empty does a frame that
    has already arrived get decoded. When neither source is ready the stream
    suspends until whichever becomes ready first. The stream ends when the
    peer closes the connection (or the session is closed locally) and raises
    the first read, write or decode error it meets.
    """

    def __init__(
        self,
        connection: Connection,
        queue: OutboundQueue,
        closing: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.connection = connection
        self.queue = queue
        self._closing = closing or (lambda: False)
        self._read_task: Optional[asyncio.Task] = None
        self._finished = False

    def __aiter__(self) -> AsyncIterator[Event]:
        return self

    async def __anext__(self) -> Event:
        if self._finished:
            raise StopAsyncIteration
        try:
            event = await self._next_event()
        except BaseException:
            await self._finish()
            raise
        if event is None:
            await self._finish()
            raise StopAsyncIteration
        return event

    async def aclose(self) -> None:
        await self._finish()

    async def _next_event(self) -> Optional[Event]:
        while True:
            if self._closing():
                return None

            cmd = self.queue.get_nowait()
            if cmd is not None:
                # not requeued on failure: at most once from the queue's side
                try:
                    await self.connection.send_command(cmd)
                except ChatError:
                    if self._closing():
                        logger.debug("Write interrupted by local close", extra={"peer": self.connection.peer})
                        return None
                    raise
                return ToSend(cmd)

            read_task = self._ensure_read_task()
            if read_task.done():
                self._read_task = None
                return self._inbound(read_task)

            if self.queue.closed:
                logger.debug("Outbound queue closed, ending event stream", extra={"peer": self.connection.peer})
                return None

            ready_task = asyncio.ensure_future(self.queue.wait_ready())
            try:
                await asyncio.wait({ready_task, read_task}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                if not ready_task.done():
                    ready_task.cancel()
                    with suppress(asyncio.CancelledError):
                        await ready_task

    def _ensure_read_task(self) -> asyncio.Task:
        if self._read_task is None:
            self._read_task = asyncio.ensure_future(self.connection.read_frame())
        return self._read_task

    def _inbound(self, read_task: asyncio.Task) -> Optional[Event]:
        try:
            frame = read_task.result()
        except ChatError:
            if self._closing():
                logger.debug("Read interrupted by local close", extra={"peer": self.connection.peer})
                return None
            raise

        if frame is None:
            logger.info("Server closed the connection", extra={"peer": self.connection.peer})
            return None

        cmd = decode(frame)
        log_command(logger, "debug", "Received event", command=cmd, peer=self.connection.peer)
        return Received(cmd)

    async def _finish(self) -> None:
        self._finished = True
        task, self._read_task = self._read_task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        elif not task.cancelled():
            # retrieve it so the loop does not report it as never retrieved
            task.exception()
