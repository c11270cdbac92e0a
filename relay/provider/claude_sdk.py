"""
Claude/Anthropic official SDK wrapper.
"""

from __future__ import annotations

import json
import threading
from queue import SimpleQueue
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import anyio

from relay.logging_config import logger
from relay.models import StreamDelta
from relay.settings import settings


class ClaudeSDKError(Exception):
    """Raised when the anthropic SDK is unavailable or returns an error."""


def _create_client(api_key: Optional[str], base_url: Optional[str]):
    try:
        from anthropic import Anthropic  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise ClaudeSDKError("anthropic is not installed, run: pip install anthropic") from exc

    try:
        kwargs: Dict[str, Any] = {"api_key": api_key, "timeout": settings.upstream_timeout}
        if base_url:
            kwargs["base_url"] = str(base_url)
        return Anthropic(**kwargs)
    except Exception as exc:
        raise ClaudeSDKError(f"Failed to initialise anthropic SDK: {exc}") from exc


def _response_to_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    for attr in ("model_dump", "to_dict", "dict"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            try:
                return fn()
            except Exception:
                continue
    try:
        return json.loads(json.dumps(obj, default=str))
    except Exception:
        return {"text": str(obj)}


def split_system(messages: List[Dict[str, Any]]) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Anthropic takes the system prompt as a top-level parameter rather than
    a message; pull system turns out of the list.
    """
    system_parts: List[str] = []
    rest: List[Dict[str, Any]] = []
    for msg in messages:
        if msg.get("role") == "system":
            content = msg.get("content")
            if isinstance(content, str) and content:
                system_parts.append(content)
            continue
        rest.append(msg)
    return "\n\n".join(system_parts), rest


def _delta_from_event(event: Dict[str, Any]) -> Optional[StreamDelta]:
    event_type = event.get("type")
    delta = event.get("delta") or {}
    if event_type == "content_block_delta" and delta.get("type") == "text_delta":
        text = delta.get("text") or ""
        return StreamDelta(text=text) if text else None
    if event_type == "message_delta" and delta.get("stop_reason"):
        return StreamDelta(finish_reason=delta["stop_reason"])
    return None


async def stream_chat(
    *,
    api_key: Optional[str],
    base_url: Optional[str],
    model_id: str,
    messages: List[Dict[str, Any]],
    max_tokens: int,
    tool_choice: Optional[str] = None,
) -> AsyncIterator[StreamDelta]:
    """
    Streaming messages.create call. Only raw stream events are consumed,
    so every text delta is seen exactly once.
    """
    client = _create_client(api_key, base_url)
    system, chat_messages = split_system(messages)
    upstream_payload: Dict[str, Any] = {
        "model": model_id,
        "messages": chat_messages,
        "max_tokens": max_tokens,
        "stream": True,
    }
    if system:
        upstream_payload["system"] = system
    # The relay declares no tools and Anthropic rejects tool_choice without them.
    if tool_choice not in (None, "none"):
        logger.debug("claude: tool_choice=%s ignored, no tools declared", tool_choice)

    queue: SimpleQueue[Any] = SimpleQueue()
    sentinel = object()
    stop = threading.Event()

    def _worker():
        try:
            stream = client.messages.create(**upstream_payload)
            try:
                for event in stream:
                    if stop.is_set():
                        break
                    queue.put(event)
            finally:
                stream.close()
        except Exception as exc:
            queue.put(exc)
        finally:
            queue.put(sentinel)

    thread = threading.Thread(target=_worker, daemon=True)
    thread.start()

    try:
        while True:
            item = await anyio.to_thread.run_sync(queue.get, abandon_on_cancel=True)
            if item is sentinel:
                break
            if isinstance(item, Exception):
                raise ClaudeSDKError(f"anthropic streaming call failed: {item}") from item
            delta = _delta_from_event(_response_to_dict(item))
            if delta is not None:
                yield delta
    finally:
        stop.set()
