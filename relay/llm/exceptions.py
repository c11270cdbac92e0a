from __future__ import annotations

from typing import Optional


class ContinuationError(RuntimeError):
    """Base class for errors that terminate a continuation session."""


class ProviderCallError(ContinuationError):
    """A provider call (network, auth, malformed response) failed."""

    def __init__(self, segment_index: int, cause: Optional[BaseException] = None):
        self.segment_index = segment_index
        self.cause = cause
        message = f"Provider call failed in segment {segment_index}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ContinuationLimitExceeded(ContinuationError):
    """The response was still truncated after the maximum number of continuations."""

    def __init__(self, max_segments: int):
        self.max_segments = max_segments
        super().__init__("Cannot continue message: Maximum segments reached")


class SegmentAborted(Exception):
    """The live stream of a segment was closed before the provider finished."""


__all__ = [
    "ContinuationError",
    "ProviderCallError",
    "ContinuationLimitExceeded",
    "SegmentAborted",
]
