"""
Knowledge Ingestion Script for the TutorBot support chatbot.

This script:
1. Loads markdown/text documents from the knowledge directories
2. Chunks them into overlapping passages with line locators
3. Generates embeddings in rate-limited batches
4. Writes the knowledge index JSON atomically

The previous index is only replaced once every batch has succeeded.

Usage:
    python ingest_documents.py [--source DIR ...] [--output PATH]
"""
import argparse
import sys
import logging
from pathlib import Path
from typing import List, Optional

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.indexer import Indexer
from services.vector_store import VectorStore
from config import (
    KNOWLEDGE_DIR, INDEX_PATH, CHUNK_SIZE, CHUNK_OVERLAP, EMBED_BATCH_SIZE, EMBEDDING_MODEL
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the TutorBot knowledge index")
    parser.add_argument(
        "--source", action="append", type=Path, dest="sources",
        help=f"Knowledge directory to index (repeatable, default: {KNOWLEDGE_DIR / 'manual'} and {KNOWLEDGE_DIR / 'pages'})"
    )
    parser.add_argument("--output", type=Path, default=INDEX_PATH, help="Index file to write")
    parser.add_argument("--batch-size", type=int, default=EMBED_BATCH_SIZE)
    parser.add_argument("--chunk-size", type=int, default=CHUNK_SIZE)
    parser.add_argument("--chunk-overlap", type=int, default=CHUNK_OVERLAP)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main ingestion process. Returns the process exit code."""
    args = parse_args(argv)
    if args.sources:
        sources, root = args.sources, None
    else:
        # Hand-written manual docs and crawled site pages share one root
        sources, root = [KNOWLEDGE_DIR / "manual", KNOWLEDGE_DIR / "pages"], KNOWLEDGE_DIR

    try:
        logger.info("=" * 60)
        logger.info("Starting TutorBot Knowledge Ingestion")
        logger.info("=" * 60)

        embedding_model = EmbeddingModel()
        logger.info(f"✓ Embedding model: {EMBEDDING_MODEL} at {embedding_model.api_url}")

        indexer = Indexer(
            embedding_model,
            chunking_engine=ChunkingEngine(args.chunk_size, args.chunk_overlap),
            batch_size=args.batch_size,
        )

        logger.info(f"Indexing: {', '.join(str(s) for s in sources)}")
        index = indexer.ingest(sources, root=root)

        if index.total_files == 0:
            logger.error("No documents found! Check that the knowledge directories exist and contain .md/.txt files")
            return 1

        VectorStore(args.output).save_index(index)

        logger.info("=" * 60)
        logger.info("INGESTION COMPLETE!")
        logger.info("=" * 60)
        logger.info(f"Documents processed: {index.total_files}")
        logger.info(f"Total chunks created: {index.total_chunks}")
        logger.info(f"Index written to: {args.output}")
        return 0

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
