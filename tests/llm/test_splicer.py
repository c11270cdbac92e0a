import asyncio

import pytest

from relay.llm.splicer import StreamClosedError, SwitchableStream


class Source:
    """
    Async iterator over fixed chunks that records how far it got and
    whether it was closed. hang=True blocks after the last chunk.
    """

    def __init__(self, chunks, hang=False):
        self.chunks = list(chunks)
        self.hang = hang
        self.produced = 0
        self.closed = False
        self._gen = self._run()

    async def _run(self):
        try:
            for chunk in self.chunks:
                self.produced += 1
                yield chunk
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.closed = True

    def __aiter__(self):
        return self

    async def __anext__(self):
        return await self._gen.__anext__()

    async def aclose(self):
        await self._gen.aclose()
        self.closed = True


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_chunks_keep_order_across_switches():
    stream: SwitchableStream[str] = SwitchableStream()

    await stream.switch_source(Source(["a", "b"]))
    first = [await stream.__anext__(), await stream.__anext__()]
    await stream.switch_source(Source(["c", "d"]))
    second = [await stream.__anext__(), await stream.__anext__()]
    await stream.close()
    rest = [chunk async for chunk in stream]

    assert first + second == ["a", "b", "c", "d"]
    assert rest == []
    assert stream.switches == 2


@pytest.mark.asyncio
async def test_switch_cancels_and_closes_previous_source():
    stream: SwitchableStream[str] = SwitchableStream()
    old = Source(["old"], hang=True)
    await stream.switch_source(old)
    assert await stream.__anext__() == "old"

    await stream.switch_source(Source(["new"]))

    assert old.closed
    assert await stream.__anext__() == "new"


@pytest.mark.asyncio
async def test_close_delivers_buffered_chunks_then_ends():
    stream: SwitchableStream[str] = SwitchableStream()
    await stream.switch_source(Source(["x", "y"]))
    await _settle()

    await stream.close()
    await stream.close()  # idempotent

    assert [chunk async for chunk in stream] == ["x", "y"]
    assert stream.closed


@pytest.mark.asyncio
async def test_fail_raises_after_buffered_chunks():
    stream: SwitchableStream[str] = SwitchableStream()
    await stream.switch_source(Source(["x"]))
    await _settle()

    await stream.fail(ValueError("limit"))

    received = []
    with pytest.raises(ValueError, match="limit"):
        async for chunk in stream:
            received.append(chunk)
    assert received == ["x"]


@pytest.mark.asyncio
async def test_source_error_terminates_stream():
    async def broken():
        yield "ok"
        raise RuntimeError("socket reset")

    stream: SwitchableStream[str] = SwitchableStream()
    await stream.switch_source(broken())

    received = []
    with pytest.raises(RuntimeError, match="socket reset"):
        async for chunk in stream:
            received.append(chunk)
    assert received == ["ok"]
    assert stream.closed


@pytest.mark.asyncio
async def test_cancel_closes_active_source_and_rejects_new_ones():
    stream: SwitchableStream[str] = SwitchableStream()
    source = Source(["first"], hang=True)
    await stream.switch_source(source)
    assert await stream.__anext__() == "first"

    stream.cancel()
    await _settle()

    assert stream.cancelled
    assert source.closed
    assert [chunk async for chunk in stream] == []

    late = Source(["late"])
    with pytest.raises(StreamClosedError):
        await stream.switch_source(late)
    assert late.closed
    assert late.produced == 0


@pytest.mark.asyncio
async def test_full_buffer_stops_reading_from_source():
    stream: SwitchableStream[int] = SwitchableStream(max_buffered=1)
    source = Source(range(10))
    await stream.switch_source(source)
    await _settle()

    # One chunk queued, one held by the blocked pump.
    assert source.produced <= 2

    received = []
    async for chunk in stream:
        received.append(chunk)
        if len(received) == 10:
            await stream.close()
    assert received == list(range(10))
