"""
Streaming contract between the generation driver and provider SDKs.

A StreamableModel is an opaque handle for one (provider, model) pair. The
driver calls `stream(...)` once per segment and consumes the returned
async iterator of StreamDelta items; the provider request is issued when
the iterator is first pulled.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

from relay.models import StreamDelta


@runtime_checkable
class StreamableModel(Protocol):
    provider: str
    model_id: str

    def stream(
        self,
        messages: List[Dict[str, Any]],
        *,
        max_tokens: int,
        tool_choice: Optional[str] = None,
    ) -> AsyncIterator[StreamDelta]:
        """Yield text deltas, then a final delta carrying the finish reason."""
        ...


__all__ = ["StreamableModel"]
