from .conversation import Message, Role
from .provider import ModelInfo, ProviderCredentials
from .session import Segment, SegmentOutcome, SegmentStatus, SessionState
from .streaming import StopReason, StreamDelta, to_stop_reason

__all__ = [
    "Message",
    "Role",
    "ModelInfo",
    "ProviderCredentials",
    "Segment",
    "SegmentOutcome",
    "SegmentStatus",
    "SessionState",
    "StopReason",
    "StreamDelta",
    "to_stop_reason",
]
