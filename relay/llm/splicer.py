"""
SwitchableStream: one long-lived output channel whose upstream source can
be swapped on the fly.

At any instant at most one source is attached. A pump task reads from it
and forwards every chunk, in order, into a bounded queue that the caller
iterates; a full queue stops the pump, so backpressure reaches the source.
Attaching a new source first cancels the pump of the previous one and
closes it, so the caller never sees chunks from two sources interleaved.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Generic, Optional, TypeVar

from relay.logging_config import logger

T = TypeVar("T")

_EOF = object()


class _StreamFailure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class StreamClosedError(RuntimeError):
    """Raised when a source is attached to a stream that already ended."""


async def _close_source(source: AsyncIterator) -> None:
    aclose = getattr(source, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as exc:
        logger.debug("switchable stream: ignoring error while closing source: %s", exc)


class SwitchableStream(Generic[T]):
    def __init__(self, max_buffered: int = 64) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_buffered)
        self._source: Optional[AsyncIterator[T]] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._switches = 0
        # No more input accepted (close / fail / source error / cancel).
        self._closed = False
        # EOF or an error has been handed to the consumer.
        self._finished = False
        self._cancelled = asyncio.Event()

    @property
    def switches(self) -> int:
        return self._switches

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    async def switch_source(self, source: AsyncIterator[T]) -> None:
        """
        Replace the active source. The previous source is cancelled and
        closed first; errors from doing so are swallowed.
        """
        if self._closed:
            await _close_source(source)
            raise StreamClosedError("Cannot switch source of a closed stream")

        await self._release_source()

        self._source = source
        self._pump_task = asyncio.create_task(self._pump(source))
        self._switches += 1

    async def close(self) -> None:
        """
        Stop accepting input and signal end-of-stream after the chunks
        already buffered. Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        await self._release_source()
        await self._put_terminal(_EOF)

    async def fail(self, error: BaseException) -> None:
        """
        Stop accepting input and end the stream with `error`. Idempotent.
        """
        if self._closed:
            return
        self._closed = True
        await self._release_source()
        await self._put_terminal(_StreamFailure(error))

    def cancel(self) -> None:
        """
        Consumer-side abandon: cancel the active source and drop anything
        buffered. Safe to call from a cancelled context (no awaiting).
        """
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self._closed = True
        self._finished = True
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
        self._drain()

    async def aclose(self) -> None:
        self.cancel()
        await self._release_source()

    def _drain(self) -> None:
        # Wakes any producer blocked on a full queue.
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return

    async def _put_terminal(self, item: object) -> None:
        if self._cancelled.is_set():
            return
        await self._queue.put(item)

    async def _release_source(self) -> None:
        task = self._pump_task
        self._pump_task = None
        self._source = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _pump(self, source: AsyncIterator[T]) -> None:
        try:
            async for chunk in source:
                if self._cancelled.is_set():
                    break
                await self._queue.put(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("switchable stream: source failed: %s", exc)
            if not self._closed:
                self._closed = True
                await self._put_terminal(_StreamFailure(exc))
        finally:
            await _close_source(source)

    def __aiter__(self) -> "SwitchableStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _EOF:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _StreamFailure):
            self._finished = True
            raise item.error
        return item


__all__ = ["SwitchableStream", "StreamClosedError"]
