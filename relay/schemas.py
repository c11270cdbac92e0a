from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from relay.models import Message


class ChatOptions(BaseModel):
    """
    Optional per-call generation options accepted on /api/chat.
    """

    max_output_tokens: Optional[int] = Field(
        None, gt=0, description="Per-segment output token cap; defaults to MAX_TOKENS"
    )
    tool_choice: Literal["none", "auto"] = Field(
        "none", description="Whether the model may invoke tools"
    )


class ChatRequest(BaseModel):
    messages: List[Message] = Field(..., description="Conversation, oldest turn first")
    options: Optional[ChatOptions] = None


class EnhancerRequest(BaseModel):
    message: str = Field(..., description="Prompt to improve")


class HealthResponse(BaseModel):
    status: str = "ok"


__all__ = ["ChatOptions", "ChatRequest", "EnhancerRequest", "HealthResponse"]
