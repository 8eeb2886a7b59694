"""Chunk and knowledge index data models."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Chunk:
    """Represents a knowledge-base chunk for retrieval."""
    chunk_id: str  # Format: "chunk_{n}"
    text: str
    source: str  # Format: "{relative_path}#L{first}-{last}"
    url: Optional[str] = None
    embedding: Optional[List[float]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.chunk_id,
            "source": self.source,
            "url": self.url,
            "text": self.text,
            "embedding": self.embedding,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        return cls(
            chunk_id=str(data["id"]),
            text=data["text"],
            source=data.get("source", ""),
            url=data.get("url"),
            embedding=data.get("embedding"),
        )


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk with relevance score from retrieval."""
    chunk: Chunk
    relevance_score: float  # cosine similarity, -1.0 to 1.0


@dataclass(frozen=True)
class KnowledgeIndex:
    """
    The persisted set of embedded chunks plus metadata.

    Serialized as a single JSON document:
    {"meta": {"model", "updatedAt", "totalChunks", "totalFiles"}, "chunks": [...]}
    """
    model: str
    total_files: int
    chunks: List[Chunk] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "meta": {
                "model": self.model,
                "updatedAt": self.updated_at.isoformat().replace("+00:00", "Z"),
                "totalChunks": self.total_chunks,
                "totalFiles": self.total_files,
            },
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KnowledgeIndex":
        meta = data.get("meta") or {}
        updated_at = meta.get("updatedAt")
        return cls(
            model=meta.get("model", ""),
            total_files=int(meta.get("totalFiles", 0)),
            chunks=[Chunk.from_dict(c) for c in data.get("chunks") or []],
            updated_at=(
                datetime.fromisoformat(updated_at.replace("Z", "+00:00"))
                if updated_at else datetime.now(timezone.utc)
            ),
        )
