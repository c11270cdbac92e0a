from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """
    One conversation turn. `content` is plain text, or a list of
    structured parts (images, files, ...) for non-text payloads.
    """

    role: Role = Field(..., description="Author of the turn")
    content: Union[str, List[Dict[str, Any]]] = Field(
        ..., description="Turn text or structured content parts"
    )

    def to_provider_dict(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content}


__all__ = ["Role", "Message"]
