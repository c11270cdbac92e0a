"""
Generation driver: one provider call per segment.

`stream_text` returns immediately with a Generation holding

- `text_stream`: the live text deltas, forwarded as they arrive. The
  provider request is issued when this stream is first pulled;
- `finished`: a future resolved exactly once with the SegmentOutcome.

Provider failures never raise through `text_stream`. They end the stream
and resolve `finished` with stop reason `error` and the cause attached, so
partial output that was already forwarded stands.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from relay.llm.exceptions import SegmentAborted
from relay.logging_config import logger
from relay.models import Message, Segment, SegmentOutcome, StopReason, to_stop_reason
from relay.provider.base import StreamableModel
from relay.settings import settings

SegmentFinishCallback = Callable[[Segment], Union[None, Awaitable[None]]]


@dataclass
class GenerationOptions:
    """
    Per-call options.

    tool_choice: whether/how the model may invoke tools ("none" by default).
    max_output_tokens: hard cap for a single segment.
    on_segment_finish: called once per segment after its outcome is known.
    """

    tool_choice: Optional[str] = "none"
    max_output_tokens: Optional[int] = None
    on_segment_finish: Optional[SegmentFinishCallback] = None

    def resolved_max_tokens(self) -> int:
        return self.max_output_tokens or settings.max_tokens


@dataclass
class Generation:
    segment: Segment
    text_stream: AsyncIterator[str]
    finished: "asyncio.Future[SegmentOutcome]"


async def _notify(callback: Optional[SegmentFinishCallback], segment: Segment) -> None:
    if callback is None:
        return
    try:
        result = callback(segment)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception(
            "on_segment_finish callback failed for segment %d", segment.index
        )


async def _close_upstream(upstream: Optional[AsyncIterator[Any]]) -> None:
    aclose = getattr(upstream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as exc:
        logger.debug("stream_text: closing provider stream failed: %s", exc)


def stream_text(
    model: StreamableModel,
    messages: Sequence[Message],
    *,
    options: Optional[GenerationOptions] = None,
    segment_index: int = 0,
) -> Generation:
    """
    Start one segment against `model` with the given (already normalised)
    messages. Must be called from a running event loop.
    """
    opts = options or GenerationOptions()
    loop = asyncio.get_running_loop()
    finished: asyncio.Future[SegmentOutcome] = loop.create_future()
    segment = Segment(
        index=segment_index,
        messages=list(messages),
        provider=model.provider,
        model=model.model_id,
    )
    payload: List[Dict[str, Any]] = [m.to_provider_dict() for m in segment.messages]

    async def _finish(outcome: SegmentOutcome) -> None:
        if finished.done():
            return
        segment.finish(outcome)
        await _notify(opts.on_segment_finish, segment)
        # Resolved only after the last chunk was yielded.
        if not finished.done():
            finished.set_result(outcome)

    async def _iterator() -> AsyncIterator[str]:
        parts: List[str] = []
        finish_reason: Optional[str] = None
        logger.info(
            "stream_text: starting segment %d with provider=%s model=%s (%d messages)",
            segment_index,
            model.provider,
            model.model_id,
            len(payload),
        )
        upstream: Optional[AsyncIterator[Any]] = None
        try:
            upstream = model.stream(
                payload,
                max_tokens=opts.resolved_max_tokens(),
                tool_choice=opts.tool_choice,
            )
            async for delta in upstream:
                if delta.finish_reason:
                    finish_reason = delta.finish_reason
                if delta.text:
                    parts.append(delta.text)
                    yield delta.text
        except Exception as exc:
            logger.warning(
                "stream_text: segment %d failed for provider=%s model=%s: %s",
                segment_index,
                model.provider,
                model.model_id,
                exc,
            )
            await _finish(
                SegmentOutcome(
                    text="".join(parts),
                    stop_reason=StopReason.ERROR,
                    finish_reason=finish_reason,
                    error=exc,
                )
            )
            return
        except (asyncio.CancelledError, GeneratorExit):
            if not finished.done():
                outcome = SegmentOutcome(
                    text="".join(parts),
                    stop_reason=StopReason.ERROR,
                    finish_reason=finish_reason,
                    error=SegmentAborted(f"segment {segment_index} was abandoned"),
                )
                segment.finish(outcome)
                finished.set_result(outcome)
            raise
        finally:
            await _close_upstream(upstream)

        stop_reason = to_stop_reason(finish_reason)
        logger.info(
            "stream_text: segment %d finished with reason=%s (%s), %d chars",
            segment_index,
            stop_reason.value,
            finish_reason,
            sum(len(p) for p in parts),
        )
        await _finish(
            SegmentOutcome(
                text="".join(parts),
                stop_reason=stop_reason,
                finish_reason=finish_reason,
            )
        )

    return Generation(segment=segment, text_stream=_iterator(), finished=finished)


__all__ = ["GenerationOptions", "Generation", "SegmentFinishCallback", "stream_text"]
