"""
Vendor-neutral streaming types.

Every SDK driver turns its vendor's stream events into StreamDelta items:
text deltas while the model is generating and a final item carrying the
vendor's finish reason.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StopReason(str, Enum):
    """
    Terminal classification of one provider call.
    """

    STOP = "stop"
    LENGTH = "length"
    ERROR = "error"
    # Tool calls, content filtering and anything else we do not map.
    OTHER = "other"


@dataclass(frozen=True)
class StreamDelta:
    text: str = ""
    finish_reason: Optional[str] = None


_FINISH_REASON_MAP = {
    # OpenAI / OpenAI-compatible
    "stop": StopReason.STOP,
    "length": StopReason.LENGTH,
    # Anthropic
    "end_turn": StopReason.STOP,
    "stop_sequence": StopReason.STOP,
    "max_tokens": StopReason.LENGTH,
    # Google Gemini
    "STOP": StopReason.STOP,
    "MAX_TOKENS": StopReason.LENGTH,
}


def to_stop_reason(finish_reason: Optional[str]) -> StopReason:
    """
    Map a vendor finish reason onto StopReason.

    A stream that ends without any finish reason is treated as a natural
    stop; unknown reasons become OTHER so they are never mistaken for
    truncation.
    """
    if finish_reason is None:
        return StopReason.STOP
    return _FINISH_REASON_MAP.get(finish_reason, StopReason.OTHER)


__all__ = ["StopReason", "StreamDelta", "to_stop_reason"]
