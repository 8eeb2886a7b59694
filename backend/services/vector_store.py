"""File-backed vector store: JSON knowledge index plus in-process cosine search."""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from models.chunk import Chunk, KnowledgeIndex, ScoredChunk
from services.errors import IndexUnavailable
from config import INDEX_PATH

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors, in [-1, 1].

    Zero-norm vectors have similarity 0.

    Raises:
        ValueError: If the vectors differ in length
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise ValueError(f"Vectors must have the same length ({va.shape[0]} != {vb.shape[0]})")

    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denominator, -1.0, 1.0))


class IndexCache:
    """
    Holds the last loaded index snapshot and the artifact version it came from.

    The pair is swapped as a unit under a lock so concurrent readers never see
    a snapshot paired with the wrong version.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Optional[KnowledgeIndex] = None
        self._source_version: Optional[int] = None

    def get(self) -> Tuple[Optional[KnowledgeIndex], Optional[int]]:
        with self._lock:
            return self._snapshot, self._source_version

    def swap(self, snapshot: Optional[KnowledgeIndex], source_version: Optional[int]) -> None:
        with self._lock:
            self._snapshot = snapshot
            self._source_version = source_version

    def clear(self) -> None:
        self.swap(None, None)


class VectorStore:
    """Persist the knowledge index as one JSON artifact and search it by cosine similarity."""

    def __init__(self, index_path: Union[str, Path] = INDEX_PATH, cache: Optional[IndexCache] = None):
        """
        Initialize the vector store.

        Args:
            index_path: Path of the JSON index artifact
            cache: Cache shared between store instances (a private one is created if omitted)
        """
        self.index_path = Path(index_path)
        self.cache = cache if cache is not None else IndexCache()
        logger.info(f"Initialized VectorStore with index: {self.index_path}")

    def load_index(self) -> Optional[KnowledgeIndex]:
        """
        Load the index, re-reading the artifact only when its mtime changed.

        Returns:
            The loaded index, or None if no index has been built or it cannot be parsed
        """
        try:
            version = self.index_path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

        snapshot, cached_version = self.cache.get()
        if snapshot is not None and cached_version == version:
            return snapshot

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                index = KnowledgeIndex.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load knowledge index {self.index_path}: {e}")
            return None

        self.cache.swap(index, version)
        logger.info(f"Loaded knowledge index: {index.total_chunks} chunks from {index.total_files} files")
        return index

    def save_index(self, index: KnowledgeIndex) -> None:
        """
        Write the index atomically (temp file in the same directory, then rename).

        Raises:
            RuntimeError: If the file cannot be written
        """
        self.index_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.index_path.parent, prefix=".index-", suffix=".json.tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(index.to_dict(), f, indent=2)
            os.replace(tmp_path, self.index_path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            error_msg = f"Failed to write knowledge index: {e}"
            logger.error(error_msg)
            raise RuntimeError(error_msg) from e

        logger.info(f"Saved {index.total_chunks} chunks to {self.index_path}")

    def search(
        self,
        query_embedding: List[float],
        top_k: int = 5
    ) -> List[ScoredChunk]:
        """
        Find the chunks most similar to the query using cosine similarity.

        Chunks whose embeddings cannot be compared with the query (missing,
        non-numeric, non-finite or of a different dimension) are skipped.

        Args:
            query_embedding: Embedding vector for user query
            top_k: Number of chunks to retrieve

        Returns:
            Up to top_k ScoredChunk objects, highest score first

        Raises:
            ValueError: If query_embedding is empty or top_k is invalid
            IndexUnavailable: If no index has been built yet
        """
        if query_embedding is None or len(query_embedding) == 0:
            raise ValueError("Query embedding cannot be empty")

        if top_k <= 0:
            raise ValueError("top_k must be positive")

        index = self.load_index()
        if index is None:
            raise IndexUnavailable(
                f"No knowledge index at {self.index_path}",
                details={"index_path": str(self.index_path)}
            )
        if not index.chunks:
            return []

        query = np.asarray(query_embedding, dtype=float)
        query_norm = float(np.linalg.norm(query))

        valid_chunks: List[Chunk] = []
        vectors = []
        skipped = 0
        for chunk in index.chunks:
            vector = self._as_vector(chunk, query.shape[0])
            if vector is None:
                skipped += 1
                continue
            valid_chunks.append(chunk)
            vectors.append(vector)

        if skipped:
            logger.warning(f"Skipped {skipped} chunks with unusable embeddings")

        if not valid_chunks:
            return []

        matrix = np.vstack(vectors)
        norms = np.linalg.norm(matrix, axis=1) * query_norm
        dots = matrix @ query
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, dots / norms, 0.0)
        scores = np.clip(scores, -1.0, 1.0)

        # Stable sort keeps index order among equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]
        scored_chunks = [
            ScoredChunk(chunk=valid_chunks[i], relevance_score=float(scores[i]))
            for i in order
        ]

        logger.debug(f"Found {len(scored_chunks)} chunks for query")
        return scored_chunks

    def count(self) -> int:
        """Number of chunks in the current index (0 when none is built)."""
        index = self.load_index()
        return index.total_chunks if index is not None else 0

    @staticmethod
    def _as_vector(chunk: Chunk, dimension: int) -> Optional[np.ndarray]:
        if chunk.embedding is None:
            return None
        try:
            vector = np.asarray(chunk.embedding, dtype=float)
        except (TypeError, ValueError):
            return None
        if vector.ndim != 1 or vector.shape[0] != dimension or not np.all(np.isfinite(vector)):
            return None
        return vector
