"""
Continuation session: turns one or more provider calls into one response.

    idle -> streaming(i) -> evaluating -> streaming(i+1) | done | failed

Each segment's live stream is attached to a SwitchableStream. When a
segment reports its outcome the session either closes the stream (natural
stop), fails it (provider error / continuation limit) or, for a
length-truncated segment, appends the partial answer plus CONTINUE_PROMPT
to its private copy of the conversation and starts the next segment with
the same (provider, model).
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional, Sequence

from relay.llm.driver import Generation, GenerationOptions, stream_text
from relay.llm.exceptions import ContinuationLimitExceeded, ProviderCallError
from relay.llm.prompts import CONTINUE_PROMPT
from relay.llm.splicer import StreamClosedError, SwitchableStream
from relay.logging_config import logger
from relay.models import Message, Role, Segment, SegmentOutcome, SessionState, StopReason
from relay.provider.base import StreamableModel
from relay.settings import settings

StreamTextFn = Callable[..., Generation]


class ContinuationSession:
    """
    Single-use coordinator of the segments of one caller-visible response.

    The session owns its segments and its output stream; callers only read
    (`stream`) and cancel (`stream.cancel()`).
    With `continue_truncated=False` a truncated segment ends the response.
    """

    def __init__(
        self,
        model: StreamableModel,
        messages: Sequence[Message],
        *,
        stream: Optional[SwitchableStream[str]] = None,
        max_segments: Optional[int] = None,
        options: Optional[GenerationOptions] = None,
        continue_truncated: bool = True,
        stream_text_fn: StreamTextFn = stream_text,
    ) -> None:
        self.model = model
        self.stream: SwitchableStream[str] = stream or SwitchableStream(
            max_buffered=settings.stream_buffer_size
        )
        self.max_segments = (
            settings.max_response_segments if max_segments is None else max_segments
        )
        self.options = options or GenerationOptions()
        self.continue_truncated = continue_truncated
        self.state = SessionState.IDLE
        self.segments: List[Segment] = []
        self.switches = 0
        self.error: Optional[BaseException] = None
        self._messages: List[Message] = list(messages)
        self._stream_text = stream_text_fn
        self._task: Optional[asyncio.Task] = None

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    def start(self) -> asyncio.Task:
        """
        Run the session in the background and return its task.
        """
        if self._task is None:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Continuation session already used (state={self.state.value})")

        try:
            await self._run_segments()
        except Exception as exc:
            logger.exception("continuation: session aborted by unexpected error")
            await self._fail(exc)

    async def _run_segments(self) -> None:
        while True:
            if self.stream.cancelled:
                self._end_cancelled()
                return

            generation = self._stream_text(
                self.model,
                self._messages,
                options=self.options,
                segment_index=len(self.segments),
            )
            self.segments.append(generation.segment)
            self.state = SessionState.STREAMING

            try:
                await self.stream.switch_source(generation.text_stream)
            except StreamClosedError:
                self._end_cancelled()
                return

            outcome = await self._wait_for_outcome(generation)
            if outcome is None or self.stream.cancelled:
                self._end_cancelled()
                return

            self.state = SessionState.EVALUATING
            if not await self._evaluate(generation.segment, outcome):
                return

    async def _wait_for_outcome(self, generation: Generation) -> Optional[SegmentOutcome]:
        """
        Wait for the segment to report completion, or for the consumer to
        walk away (in which case None is returned).
        """
        cancelled = asyncio.ensure_future(self.stream.wait_cancelled())
        try:
            await asyncio.wait(
                {generation.finished, cancelled},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancelled.cancel()
        if generation.finished.done():
            return generation.finished.result()
        return None

    async def _evaluate(self, segment: Segment, outcome: SegmentOutcome) -> bool:
        """
        Apply one completion signal. Returns True when another segment
        should be started.
        """
        if outcome.stop_reason is StopReason.ERROR:
            await self._fail(ProviderCallError(segment.index, outcome.error))
            return False

        if outcome.stop_reason is not StopReason.LENGTH or not self.continue_truncated:
            # Natural stop, anything that is not truncation, or a single-segment session.
            self.state = SessionState.DONE
            await self.stream.close()
            return False

        if self.switches >= self.max_segments:
            logger.warning(
                "continuation: segment %d truncated again after %d continuations; giving up",
                segment.index,
                self.switches,
            )
            await self._fail(ContinuationLimitExceeded(self.max_segments))
            return False

        switches_left = self.max_segments - self.switches
        logger.info(
            "Reached max token limit (%d): Continuing message (%d switches left)",
            self.options.resolved_max_tokens(),
            switches_left,
        )
        self._messages.append(Message(role=Role.ASSISTANT, content=outcome.text))
        self._messages.append(Message(role=Role.USER, content=CONTINUE_PROMPT))
        self.switches += 1
        return True

    async def _fail(self, error: BaseException) -> None:
        self.state = SessionState.FAILED
        self.error = error
        await self.stream.fail(error)

    def _end_cancelled(self) -> None:
        logger.info(
            "continuation: output stream cancelled by consumer after %d segment(s)",
            len(self.segments),
        )
        self.state = SessionState.DONE


__all__ = ["ContinuationSession"]
