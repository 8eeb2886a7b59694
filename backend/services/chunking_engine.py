"""Chunking engine: overlapping sliding windows cut at natural boundaries."""
import logging
from typing import List, Tuple

from models.document import Document
from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)

Span = Tuple[int, int]


class ChunkingEngine:
    """Segments documents into retrievable chunks with line-range citations."""

    # Boundaries searched backward from the window end, any of them may win
    PARAGRAPH_BREAK = "\n\n"
    SENTENCE_TERMINATORS = (".", "!", "?")

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Target chunk length in characters
            chunk_overlap: Characters shared by consecutive windows when no boundary is found

        Raises:
            ValueError: If chunk_size <= 0 or overlap is not in [0, chunk_size)
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_documents(self, documents: List[Document]) -> List[Chunk]:
        """
        Chunk documents and assign sequential ids across the whole batch.

        Args:
            documents: List of loaded documents

        Returns:
            List of Chunk objects (without embeddings)
        """
        all_chunks: List[Chunk] = []

        for document in documents:
            pieces = self.chunk_with_locations(document.content)
            logger.info(f"Chunking {document.source}: {len(pieces)} chunk(s)")

            for text, location in pieces:
                all_chunks.append(Chunk(
                    chunk_id=f"chunk_{len(all_chunks)}",
                    text=text,
                    source=f"{document.source}#{location}",
                    url=document.url,
                ))

        logger.info(f"Created {len(all_chunks)} chunks from {len(documents)} documents")
        return all_chunks

    def chunk_text(self, text: str) -> List[str]:
        """Split text into trimmed, non-empty chunks."""
        return [chunk for chunk, _ in self.chunk_with_locations(text)]

    def chunk_with_locations(self, text: str) -> List[Tuple[str, str]]:
        """
        Split text into trimmed chunks paired with their line locator.

        Returns:
            List of (chunk_text, location) where location is "L{n}" or "L{first}-{last}"
        """
        results = []
        for start, end in self.split_spans(text):
            raw = text[start:end]
            stripped = raw.strip()
            if not stripped:
                continue
            # Offset of the first non-whitespace character inside the span
            chunk_start = start + (len(raw) - len(raw.lstrip()))
            results.append((stripped, self._line_location(text, chunk_start, stripped)))
        return results

    def split_spans(self, text: str) -> List[Span]:
        """
        Compute raw (start, end) windows over text.

        Consecutive spans never leave a gap: each span starts at or before the
        previous span's end, and the last span ends at len(text).
        """
        spans: List[Span] = []
        if not text:
            return spans

        start = 0
        length = len(text)
        while start < length:
            end = min(start + self.chunk_size, length)

            if end == length:
                spans.append((start, end))
                break

            break_point = self._find_break(text, start, end)
            if break_point > self.chunk_size * 0.5:
                cut = start + break_point + 1
                spans.append((start, cut))
                start = cut
            else:
                spans.append((start, end))
                start = end - self.chunk_overlap

        return spans

    def _find_break(self, text: str, start: int, end: int) -> int:
        """Offset (relative to start) of the last paragraph break or sentence end in the window, or -1."""
        window = text[start:end]
        candidates = [window.rfind(self.PARAGRAPH_BREAK)]
        candidates.extend(window.rfind(t) for t in self.SENTENCE_TERMINATORS)
        return max(candidates)

    @staticmethod
    def _line_location(text: str, offset: int, chunk: str) -> str:
        first_line = text.count("\n", 0, offset) + 1
        last_line = first_line + chunk.count("\n")
        if first_line == last_line:
            return f"L{first_line}"
        return f"L{first_line}-{last_line}"
