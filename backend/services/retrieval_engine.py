"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from typing import List
from models.chunk import ScoredChunk
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel
from services.errors import IndexUnavailable

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed a query, search the knowledge index and format cited passages."""

    def __init__(self, vector_store: VectorStore, embedding_model: EmbeddingModel):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        logger.info("Initialized RetrievalEngine")

    def has_index(self) -> bool:
        """Whether a non-empty knowledge index is available."""
        index = self.vector_store.load_index()
        return index is not None and index.total_chunks > 0

    def retrieve(self, query: str, top_k: int = 5) -> List[ScoredChunk]:
        """
        Retrieve the top_k chunks most similar to the query.

        No embedding call is made when the query is blank or no index exists;
        both cases return an empty list.

        Args:
            query: User question
            top_k: Maximum number of chunks to retrieve (default: 5)

        Returns:
            List of scored chunks, highest score first

        Raises:
            ServiceUnavailable, InvalidResponse: If the query cannot be embedded
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        if not self.has_index():
            logger.info("No knowledge index available, skipping retrieval")
            return []

        logger.debug(f"Embedding query: {query[:100]}...")
        query_embedding = self.embedding_model.embed_text(query)

        try:
            scored_chunks = self.vector_store.search(query_embedding, top_k=top_k)
        except IndexUnavailable as e:
            # The index can disappear between the check above and the search
            logger.warning(f"{e}, skipping retrieval")
            return []
        if scored_chunks:
            logger.info(
                f"Retrieved {len(scored_chunks)} chunks "
                f"(top score: {scored_chunks[0].relevance_score:.3f})"
            )
        else:
            logger.info("No chunks found for query")
        return scored_chunks

    @staticmethod
    def build_context(scored_chunks: List[ScoredChunk]) -> str:
        """
        Format retrieved chunks as passages with source citations.

        Each passage is the chunk text followed by "[source: <source> | <url>]"
        (the url part only when present); passages are separated by "---".
        """
        return "\n---\n".join(RetrievalEngine.format_passage(sc) for sc in scored_chunks)

    @staticmethod
    def format_passage(scored_chunk: ScoredChunk) -> str:
        chunk = scored_chunk.chunk
        source_info = f"[source: {chunk.source}"
        if chunk.url:
            source_info += f" | {chunk.url}"
        source_info += "]"
        return f"{chunk.text}\n{source_info}"
