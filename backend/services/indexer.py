"""Offline knowledge indexer: load, chunk, embed and assemble the index."""
import dataclasses
import logging
import time
from typing import Callable, Iterable, List, Optional

from models.chunk import Chunk, KnowledgeIndex
from services.chunking_engine import ChunkingEngine
from services.document_loader import DocumentLoader, PathLike
from services.embedding_model import EmbeddingModel
from config import EMBED_BATCH_SIZE, EMBED_BATCH_DELAY

logger = logging.getLogger(__name__)


class Indexer:
    """Builds a KnowledgeIndex from knowledge-base directories."""

    def __init__(
        self,
        embedding_model: EmbeddingModel,
        chunking_engine: Optional[ChunkingEngine] = None,
        batch_size: int = EMBED_BATCH_SIZE,
        batch_delay: float = EMBED_BATCH_DELAY,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the indexer.

        Args:
            embedding_model: Client used to embed chunk texts
            chunking_engine: Chunker (defaults to configured chunk size/overlap)
            batch_size: Texts per embedding request
            batch_delay: Pause in seconds between batches, to respect rate limits
            sleep: Sleep function (injectable for tests)
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.embedding_model = embedding_model
        self.chunking_engine = chunking_engine or ChunkingEngine()
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    def ingest(self, directories: Iterable[PathLike], root: Optional[PathLike] = None) -> KnowledgeIndex:
        """
        Read, chunk and embed every document under the given directories.

        The index is built fully in memory; nothing is written here, so a
        failing batch can never leave a partial artifact behind.

        Args:
            directories: Knowledge-base directories, scanned recursively
            root: Directory that chunk source paths are made relative to

        Returns:
            KnowledgeIndex with every chunk embedded

        Raises:
            ServiceUnavailable, InvalidResponse: If any embedding batch fails
        """
        documents = DocumentLoader(directories, root=root).load_documents()
        chunks = self.chunking_engine.chunk_documents(documents)
        logger.info(f"Total chunks: {len(chunks)}")

        embedded = self.embed_chunks(chunks)

        return KnowledgeIndex(
            model=self.embedding_model.model_name,
            total_files=len(documents),
            chunks=embedded,
        )

    def embed_chunks(self, chunks: List[Chunk]) -> List[Chunk]:
        """
        Attach embeddings to chunks in fixed-size batches.

        Raises:
            ServiceUnavailable, InvalidResponse: On the first failing batch
        """
        embedded: List[Chunk] = []
        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size

        for i in range(0, len(chunks), self.batch_size):
            batch = chunks[i:i + self.batch_size]
            batch_num = (i // self.batch_size) + 1

            try:
                vectors = self.embedding_model.embed_batch([c.text for c in batch])
            except Exception:
                logger.error(f"Embedding batch {batch_num}/{total_batches} failed, aborting ingestion")
                raise

            embedded.extend(
                dataclasses.replace(chunk, embedding=vector)
                for chunk, vector in zip(batch, vectors)
            )
            logger.info(f"Embedded {len(embedded)}/{len(chunks)} chunks")

            if i + self.batch_size < len(chunks) and self.batch_delay > 0:
                self._sleep(self.batch_delay)

        return embedded
