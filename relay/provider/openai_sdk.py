"""
Helpers for calling OpenAI and OpenAI-compatible vendors (Groq, Deepseek,
xAI, OpenRouter, Mistral, Ollama, ...) through the official Python SDK.

The call signature matches claude_sdk / google_sdk so sdk_selector can
dispatch uniformly.
"""

from __future__ import annotations

import json
import threading
from queue import SimpleQueue
from typing import Any, AsyncIterator, Dict, List, Optional

import anyio

from relay.logging_config import logger
from relay.models import StreamDelta
from relay.settings import settings


class OpenAISDKError(Exception):
    """Raised when the openai SDK is unavailable or returns an error."""


def _create_client(api_key: Optional[str], base_url: Optional[str]):
    try:
        from openai import OpenAI  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise OpenAISDKError("openai is not installed, run: pip install openai") from exc

    try:
        kwargs: Dict[str, Any] = {"api_key": api_key, "timeout": settings.upstream_timeout}
        if base_url:
            kwargs["base_url"] = str(base_url)
        return OpenAI(**kwargs)
    except Exception as exc:
        raise OpenAISDKError(f"Failed to initialise openai SDK: {exc}") from exc


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


def _delta_from_chunk(chunk: Dict[str, Any]) -> Optional[StreamDelta]:
    """
    Extract the text delta / finish reason of the first choice of a
    chat.completion.chunk payload.
    """
    choices = chunk.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    choice = choices[0]
    delta = choice.get("delta") or {}
    text = delta.get("content") if isinstance(delta, dict) else None
    finish_reason = choice.get("finish_reason")
    if not text and not finish_reason:
        return None
    return StreamDelta(text=text or "", finish_reason=finish_reason)


def build_payload(
    *,
    model_id: str,
    messages: List[Dict[str, Any]],
    max_tokens: int,
    tool_choice: Optional[str],
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": model_id,
        "messages": messages,
        "max_tokens": max_tokens,
        "stream": True,
    }
    # The relay declares no tools and vendors reject tool_choice without them.
    if tool_choice not in (None, "none"):
        logger.debug("openai: tool_choice=%s ignored, no tools declared", tool_choice)
    return payload


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
    Streaming chat.completions call. A background thread consumes the sync
    SDK stream and hands chunks back to the async side through a queue.
    Closing this iterator tells the worker to stop reading.
    """
    client = _create_client(api_key, base_url)
    upstream_payload = build_payload(
        model_id=model_id,
        messages=messages,
        max_tokens=max_tokens,
        tool_choice=tool_choice,
    )

    queue: SimpleQueue[Any] = SimpleQueue()
    sentinel = object()
    stop = threading.Event()

    def _worker():
        try:
            stream = client.chat.completions.create(**upstream_payload)
            try:
                for chunk in stream:
                    if stop.is_set():
                        break
                    queue.put(chunk)
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
                raise OpenAISDKError(f"openai streaming call failed: {item}") from item
            delta = _delta_from_chunk(_response_to_dict(item))
            if delta is not None:
                yield delta
    finally:
        stop.set()
