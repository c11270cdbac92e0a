"""
Shared pytest configuration.

This file ensures the project root is on sys.path so that `import relay`
works consistently in all tests, and provides a scripted stand-in for a
provider model so no test talks to a real vendor.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest


# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from relay.models import StreamDelta  # noqa: E402


@dataclass
class SegmentScript:
    """
    What one provider call does: emit `chunks`, then either finish with
    `finish_reason`, raise `error`, or (hang=True) block until cancelled.
    """

    chunks: Sequence[str] = ()
    finish_reason: Optional[str] = "stop"
    error: Optional[Exception] = None
    hang: bool = False


@dataclass
class ScriptedModel:
    """
    Fake StreamableModel. Call N replays scripts[N] (the last script is
    reused once the list runs out).
    """

    scripts: List[SegmentScript]
    provider: str = "OpenAI"
    model_id: str = "gpt-4o"
    calls: List[List[Dict[str, Any]]] = field(default_factory=list)
    max_tokens_seen: List[int] = field(default_factory=list)
    tool_choices_seen: List[Optional[str]] = field(default_factory=list)
    closed: int = 0

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        *,
        max_tokens: int,
        tool_choice: Optional[str] = None,
    ):
        index = len(self.calls)
        self.calls.append(list(messages))
        self.max_tokens_seen.append(max_tokens)
        self.tool_choices_seen.append(tool_choice)
        script = self.scripts[min(index, len(self.scripts) - 1)]
        try:
            for chunk in script.chunks:
                await asyncio.sleep(0)
                yield StreamDelta(text=chunk)
            if script.error is not None:
                raise script.error
            if script.hang:
                await asyncio.Event().wait()
            yield StreamDelta(finish_reason=script.finish_reason)
        finally:
            self.closed += 1


@pytest.fixture
def scripted_model():
    """
    Factory fixture: scripted_model(SegmentScript(...), ...) -> ScriptedModel.
    """

    def _make(*scripts: SegmentScript, **kwargs: Any) -> ScriptedModel:
        return ScriptedModel(scripts=list(scripts), **kwargs)

    return _make


@pytest.fixture
def segment_script():
    return SegmentScript
