import asyncio
from typing import AsyncIterator

from .models import Event

_CLOSED = object()


class EventQueueClosed(Exception):
    pass


class EventQueue:
    """Ordered sink for the events of one execution.

    The producer calls ``publish`` and finally ``close``; a consumer drains it
    with ``async for``. Iteration ends once the queue is closed and empty.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def publish(self, event: Event) -> None:
        if self._closed:
            raise EventQueueClosed("Cannot publish to a closed event queue")
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[Event]:
        while True:
            event = await self._queue.get()
            if event is _CLOSED:
                return
            yield event
