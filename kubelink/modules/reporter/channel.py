"""
Single-slot signal channel.

Holds at most one pending value. Once closed, buffered values can still
be received; after that every receive returns False at once, which is how
a waiter observes that the other side has finished.
"""

import asyncio
from collections import deque
from typing import Deque

from kubelink.errors import ChannelClosedError


class SignalChannel:
    """Buffered (capacity 1), closable boolean channel for asyncio tasks."""

    capacity = 1

    def __init__(self):
        self._buffer: Deque[bool] = deque()
        self._closed = False
        self._cond = asyncio.Condition()

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of buffered values."""
        return len(self._buffer)

    async def send(self, value: bool = True) -> None:
        """
        Send a value, waiting while the slot is full.

        Raises:
            ChannelClosedError: Channel is, or becomes, closed
        """
        async with self._cond:
            await self._cond.wait_for(
                lambda: self._closed or len(self._buffer) < self.capacity
            )
            if self._closed:
                raise ChannelClosedError("send on closed channel")
            self._buffer.append(value)
            self._cond.notify_all()

    async def receive(self) -> bool:
        """Receive the next value; False once closed and drained."""
        async with self._cond:
            await self._cond.wait_for(lambda: self._closed or bool(self._buffer))
            if self._buffer:
                value = self._buffer.popleft()
                self._cond.notify_all()
                return value
            return False

    async def close(self) -> None:
        """
        Close the channel and wake every waiter.

        Raises:
            ChannelClosedError: Channel was already closed
        """
        async with self._cond:
            if self._closed:
                raise ChannelClosedError("close of closed channel")
            self._closed = True
            self._cond.notify_all()
