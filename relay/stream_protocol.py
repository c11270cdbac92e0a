"""
AI data-stream line protocol used on the /api/chat response body.

Each line is `<code>:<json value>\n`:

- `0:` a text delta (JSON string)
- `3:` an error message (JSON string), sent when a response fails after
  output has already started
"""

from __future__ import annotations

import json
from typing import Any, Tuple

TEXT_PART = "0"
ERROR_PART = "3"


def _encode_part(code: str, value: Any) -> bytes:
    return f"{code}:{json.dumps(value, ensure_ascii=False)}\n".encode("utf-8")


def encode_text_part(text: str) -> bytes:
    return _encode_part(TEXT_PART, text)


def encode_error_part(message: str) -> bytes:
    return _encode_part(ERROR_PART, message)


def parse_stream_part(line: str) -> Tuple[str, Any]:
    """
    Parse one protocol line back into (code, value).
    """
    code, sep, raw = line.partition(":")
    if not sep or not code:
        raise ValueError(f"Invalid stream part: {line!r}")
    return code, json.loads(raw)


__all__ = [
    "TEXT_PART",
    "ERROR_PART",
    "encode_text_part",
    "encode_error_part",
    "parse_stream_part",
]
