"""Data models for the TutorBot support chatbot."""
from .document import Document
from .chunk import Chunk, ScoredChunk, KnowledgeIndex
from .conversation import Message
from .intent import Intent, IntentType
from .tutor import Tutor, TutorRatings, PricingSummary, hourly_price
from .api import ChatMessage, ChatRequest, ChatResponse, ErrorResponse

__all__ = [
    "Document",
    "Chunk",
    "ScoredChunk",
    "KnowledgeIndex",
    "Message",
    "Intent",
    "IntentType",
    "Tutor",
    "TutorRatings",
    "PricingSummary",
    "hourly_price",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
]
