"""
Helpers for calling Google Gemini via the official google-genai SDK.
"""

from __future__ import annotations

import json
import threading
from queue import SimpleQueue
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple

import anyio

from relay.models import StreamDelta


class GoogleSDKError(Exception):
    """Raised when the google-genai SDK is unavailable or returns an error."""


def _create_client(api_key: Optional[str], base_url: Optional[str]):
    try:
        from google import genai  # type: ignore
    except ImportError as exc:  # pragma: no cover - import guard
        raise GoogleSDKError(
            "google-genai is not installed, run: pip install google-genai"
        ) from exc

    try:
        # Some google-genai releases reject client_options; keep the minimal set.
        return genai.Client(api_key=api_key)
    except Exception as exc:
        raise GoogleSDKError(f"Failed to initialise google-genai: {exc}") from exc


def messages_to_contents(
    messages: Iterable[Dict[str, Any]],
) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Convert OpenAI-style messages into a system instruction plus Gemini
    contents. Gemini calls the assistant role "model".
    """
    system_parts: List[str] = []
    contents: List[Dict[str, Any]] = []
    for msg in messages:
        role = msg.get("role") or "user"
        content = msg.get("content")
        if role == "system":
            if isinstance(content, str) and content:
                system_parts.append(content)
            continue

        parts: List[Dict[str, Any]] = []
        if isinstance(content, str):
            parts.append({"text": content})
        elif isinstance(content, list):
            for item in content:
                if isinstance(item, dict) and isinstance(item.get("text"), str):
                    parts.append({"text": item["text"]})
        elif content is not None:
            parts.append({"text": str(content)})

        contents.append(
            {
                "role": "model" if role == "assistant" else "user",
                "parts": parts or [{"text": ""}],
            }
        )
    system = "\n\n".join(system_parts) or None
    return system, contents


def _response_to_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    for attr in ("to_json_dict", "model_dump", "dict"):
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


def _delta_from_response(payload: Dict[str, Any]) -> Optional[StreamDelta]:
    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None
    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(
        part["text"]
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )
    finish_reason = candidate.get("finish_reason")
    finish_reason = getattr(finish_reason, "value", finish_reason)
    if not text and not finish_reason:
        return None
    return StreamDelta(text=text, finish_reason=finish_reason)


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
    Streaming generate_content call. A background thread consumes the sync
    SDK and passes chunks back to the async side through a queue.
    """
    client = _create_client(api_key, base_url)
    system, contents = messages_to_contents(messages)
    config: Dict[str, Any] = {"max_output_tokens": max_tokens}
    if system:
        config["system_instruction"] = system

    queue: SimpleQueue[Any] = SimpleQueue()
    sentinel = object()
    stop = threading.Event()

    def _worker():
        try:
            for part in client.models.generate_content_stream(
                model=model_id, contents=contents, config=config
            ):
                if stop.is_set():
                    break
                queue.put(part)
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
                raise GoogleSDKError(f"google-genai streaming call failed: {item}") from item
            delta = _delta_from_response(_response_to_dict(item))
            if delta is not None:
                yield delta
    finally:
        stop.set()
