"""Document data models."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Document:
    """Represents a loaded knowledge-base text document."""
    source: str  # path relative to the knowledge root, forward slashes
    content: str
    url: Optional[str] = None
