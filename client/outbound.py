from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Optional

from shared.commands import Command
from shared.errors import NotConnectedError


class OutboundQueue:
    """
    Unbounded FIFO of commands waiting to be written.

    Any number of producers may ``put``; the event multiplexer is the only
    consumer. There is no backpressure: a producer that outpaces the network
    grows the queue without limit.
    """

    def __init__(self) -> None:
        self._items: Deque[Command] = deque()
        self._ready = asyncio.Event()
        self._closed = False

    def put(self, cmd: Command) -> None:
        if self._closed:
            raise NotConnectedError("Outbound queue is closed")
        self._items.append(cmd)
        self._ready.set()

    def get_nowait(self) -> Optional[Command]:
        """Pop the oldest command, or None when nothing is queued."""
        if not self._items:
            return None
        cmd = self._items.popleft()
        if not self._items and not self._closed:
            self._ready.clear()
        return cmd

    async def wait_ready(self) -> None:
        """Wait until a command is queued or the queue is closed, without consuming."""
        await self._ready.wait()

    def close(self) -> None:
        """Refuse further commands. Already queued commands stay available."""
        self._closed = True
        self._ready.set()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)
