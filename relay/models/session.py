from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .conversation import Message
from .streaming import StopReason


class SegmentStatus(str, Enum):
    STREAMING = "streaming"
    COMPLETE = "complete"
    LENGTH_TRUNCATED = "length-truncated"
    FAILED = "failed"


class SessionState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    EVALUATING = "evaluating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SegmentOutcome:
    """
    Completion signal of one provider call.
    """

    text: str
    stop_reason: StopReason
    finish_reason: Optional[str] = None
    error: Optional[BaseException] = None


@dataclass
class Segment:
    """
    One provider call within a single caller-visible response.
    """

    index: int
    messages: List[Message]
    provider: str
    model: str
    text: str = ""
    status: SegmentStatus = SegmentStatus.STREAMING
    outcome: Optional[SegmentOutcome] = field(default=None, repr=False)

    def finish(self, outcome: SegmentOutcome) -> None:
        self.outcome = outcome
        self.text = outcome.text
        if outcome.stop_reason is StopReason.LENGTH:
            self.status = SegmentStatus.LENGTH_TRUNCATED
        elif outcome.stop_reason is StopReason.ERROR:
            self.status = SegmentStatus.FAILED
        else:
            self.status = SegmentStatus.COMPLETE


__all__ = [
    "SegmentStatus",
    "SessionState",
    "SegmentOutcome",
    "Segment",
]
