"""Request and response models for the chat API."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ChatMessage(BaseModel):
    """One message of the conversation sent by the client."""
    role: Literal["system", "user", "assistant"]
    content: str

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("content must not be empty")
        return value


class ChatRequest(BaseModel):
    """Body of POST /chat."""
    messages: List[ChatMessage] = Field(..., min_length=1)


class ChatResponse(BaseModel):
    """Body returned by POST /chat."""
    reply: str


class ErrorResponse(BaseModel):
    """Body returned on failure."""
    error: str
    code: Optional[str] = None  # upstream error code, when available
