from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from relay.llm.directive import extract_model_from_message
from relay.llm.prompts import get_system_prompt
from relay.logging_config import logger
from relay.models import Message, Role
from relay.provider.registry import ModelRegistry


@dataclass(frozen=True)
class NormalizedTurns:
    messages: List[Message]
    provider: str
    model: str


def normalize_turns(
    messages: Sequence[Message],
    registry: ModelRegistry,
    system_prompt: Optional[str] = None,
) -> NormalizedTurns:
    """
    Build the message list sent to the provider and pick the model for the
    whole upcoming session.

    The list starts with the system prompt, followed by every turn in
    order; user turns have their directive stripped. The model is taken
    from the last user turn whose directive names a registered model,
    falling back to the registry default.
    """
    current_model = registry.default_model
    processed: List[Message] = [
        Message(
            role=Role.SYSTEM,
            content=system_prompt if system_prompt is not None else get_system_prompt(),
        )
    ]

    for message in messages:
        if message.role is not Role.USER:
            processed.append(message)
            continue

        parsed = extract_model_from_message(message, registry.default_model)
        if registry.is_known(parsed.model):
            current_model = parsed.model
        elif parsed.model != registry.default_model:
            logger.info(
                "Ignoring unknown model directive %r; keeping %s",
                parsed.model,
                current_model,
            )
        processed.append(Message(role=Role.USER, content=parsed.content))

    provider = registry.provider_for(current_model)
    return NormalizedTurns(messages=processed, provider=provider, model=current_model)


__all__ = ["NormalizedTurns", "normalize_turns"]
