"""Conversation data models."""
from dataclasses import dataclass
from typing import Any, Dict, List

SYSTEM = "system"
USER = "user"
ASSISTANT = "assistant"
VALID_ROLES = (SYSTEM, USER, ASSISTANT)


@dataclass(frozen=True)
class Message:
    """Represents a single chat message."""
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def as_messages(raw: List[Any]) -> List[Message]:
    """Coerce dicts or Message objects into Message objects."""
    messages = []
    for item in raw:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, dict):
            messages.append(Message(role=item.get("role", ""), content=item.get("content", "")))
        else:
            messages.append(Message(role=getattr(item, "role", ""), content=getattr(item, "content", "")))
    return messages
