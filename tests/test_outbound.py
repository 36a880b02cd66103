import asyncio

import pytest

from client.outbound import OutboundQueue
from shared.commands import Deliver, FetchRequest
from shared.errors import NotConnectedError


def test_fifo_order():
    queue = OutboundQueue()
    a = Deliver("alice", "bob", "first")
    b = Deliver("alice", "bob", "second")
    queue.put(a)
    queue.put(b)
    assert len(queue) == 2
    assert queue.get_nowait() is a
    assert queue.get_nowait() is b
    assert queue.get_nowait() is None


@pytest.mark.asyncio
async def test_wait_ready_blocks_until_put():
    queue = OutboundQueue()
    waiter = asyncio.create_task(queue.wait_ready())
    await asyncio.sleep(0.01)
    assert not waiter.done()

    queue.put(FetchRequest())
    await asyncio.wait_for(waiter, timeout=1.0)
    # waiting does not consume
    assert queue.get_nowait() == FetchRequest()


@pytest.mark.asyncio
async def test_wait_ready_blocks_again_once_drained():
    queue = OutboundQueue()
    queue.put(FetchRequest())
    await asyncio.wait_for(queue.wait_ready(), timeout=1.0)
    queue.get_nowait()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(queue.wait_ready(), timeout=0.05)


@pytest.mark.asyncio
async def test_close_wakes_waiter_and_keeps_items():
    queue = OutboundQueue()
    queue.put(FetchRequest())
    queue.get_nowait()
    waiter = asyncio.create_task(queue.wait_ready())
    await asyncio.sleep(0.01)

    queue.close()
    await asyncio.wait_for(waiter, timeout=1.0)
    assert queue.closed


def test_put_after_close_fails():
    queue = OutboundQueue()
    queue.put(FetchRequest())
    queue.close()
    with pytest.raises(NotConnectedError):
        queue.put(FetchRequest())
    assert queue.get_nowait() == FetchRequest()
