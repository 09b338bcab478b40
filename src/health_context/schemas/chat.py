"""Chat turn schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """A prior message in the conversation."""

    role: str = Field(description="'user' or 'assistant'")
    content: str = Field(description="Message text")


class ChatReply(BaseModel):
    """Generated reply plus the metadata the message store persists with it."""

    content: str = Field(description="Generated reply text")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Message metadata, including ragContext"
    )
