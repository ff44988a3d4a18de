# File: domain/keyspace/services/key_queue.py
import asyncio
from typing import AsyncIterator

_CLOSED = object()


class KeyQueue:
    """Bounded single-producer / single-consumer queue with a one-shot close."""

    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def put(self, key: str):
        if self._closed:
            raise RuntimeError("put() on a closed KeyQueue")
        await self._queue.put(key)

    def close(self):
        """Signal the consumer that no more keys will come.

        Never blocks: when the queue is full the consumer sees the closed flag
        once it has drained the pending keys.
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    def __aiter__(self) -> AsyncIterator[str]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[str]:
        while not (self._closed and self._queue.empty()):
            key = await self._queue.get()
            if key is _CLOSED:
                return
            yield key
