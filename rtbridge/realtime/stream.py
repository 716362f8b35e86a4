import asyncio
from typing import AsyncIterator, Generic, TypeVar

T = TypeVar("T")


class _EndOfStream:
    pass


class _StreamFailure:
    def __init__(self, error: BaseException):
        self.error = error


_END = _EndOfStream()


class ChunkStream(Generic[T]):
    """
    Single-consumer async stream fed by the upstream reader.

    The producer calls `put`, then either `close` or `fail`. The consumer
    iterates it once with `async for`; chunks put before a failure are still
    delivered, then the failure is raised.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._consumed = False
        self.closed = False

    def put(self, chunk: T):
        if self.closed:
            raise RuntimeError("Cannot put into a closed stream")
        self._queue.put_nowait(chunk)

    def close(self):
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_END)

    def fail(self, error: BaseException):
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_StreamFailure(error))

    def __aiter__(self) -> AsyncIterator[T]:
        if self._consumed:
            raise RuntimeError("Stream can only be consumed once")
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            chunk = await self._queue.get()
            if chunk is _END:
                return
            if isinstance(chunk, _StreamFailure):
                raise chunk.error
            yield chunk
