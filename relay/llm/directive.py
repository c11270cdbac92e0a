"""
`[Model: <identifier>]` directive parsing.

A user turn may start with a directive followed by a blank line:

    [Model: gpt-4o]

    Hello

The directive is stripped before the turn is forwarded. The identifier is
returned verbatim; whether it names a known model is decided by the
caller, so an unknown identifier still gets its directive removed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from relay.models import Message

MODEL_REGEX = re.compile(r"^\[Model: (.*?)\]\n\n")


@dataclass(frozen=True)
class ParsedTurn:
    model: str
    content: str


def extract_model_from_message(message: Message, default_model: str) -> ParsedTurn:
    """
    Split a user turn into (model, content). Never raises: non-text
    content yields (default_model, "") and a missing or malformed
    directive yields (default_model, content).
    """
    if not isinstance(message.content, str):
        return ParsedTurn(model=default_model, content="")

    match = MODEL_REGEX.match(message.content)
    if match:
        # An empty identifier ("[Model: ]") is still stripped but routes to the default.
        model = match.group(1) or default_model
        return ParsedTurn(model=model, content=message.content[match.end():])

    return ParsedTurn(model=default_model, content=message.content)


__all__ = ["MODEL_REGEX", "ParsedTurn", "extract_model_from_message"]
