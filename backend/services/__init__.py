"""Services for the TutorBot support chatbot."""
from .errors import (
    ChatbotError, ValidationError, UpstreamUnavailable, UpstreamError,
    ServiceUnavailable, InvalidResponse, DataLookupFailure, IndexUnavailable
)
from .document_loader import DocumentLoader
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import VectorStore, IndexCache, cosine_similarity
from .indexer import Indexer
from .retrieval_engine import RetrievalEngine
from .intent_classifier import IntentClassifier
from .fact_lookup import FactLookup, SupabaseFactLookup
from .fact_resolver import FactResolver
from .context_assembler import ContextAssembler
from .llm_client import LLMClient
from .chat_orchestrator import ChatOrchestrator

__all__ = [
    'ChatbotError', 'ValidationError', 'UpstreamUnavailable', 'UpstreamError',
    'ServiceUnavailable', 'InvalidResponse', 'DataLookupFailure', 'IndexUnavailable',
    'DocumentLoader', 'ChunkingEngine', 'EmbeddingModel', 'VectorStore', 'IndexCache',
    'cosine_similarity', 'Indexer', 'RetrievalEngine', 'IntentClassifier', 'FactLookup',
    'SupabaseFactLookup', 'FactResolver', 'ContextAssembler', 'LLMClient', 'ChatOrchestrator'
]
