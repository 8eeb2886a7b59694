"""Configuration management for the TutorBot support chatbot."""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BACKEND_DIR = Path(__file__).parent

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
EMBEDDING_API_KEY = os.getenv("EMBEDDING_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:5173,http://localhost:3000"
).split(",")

# Model Configuration
LLM_MODEL = os.getenv("LLM_MODEL", "llama-3.1-8b-instant")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))
# OpenAI-compatible embeddings endpoint (Ollama serves one under /v1)
EMBEDDING_BASE_URL = os.getenv("EMBEDDING_BASE_URL", "http://localhost:11434/v1")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")

# Knowledge base
KNOWLEDGE_DIR = Path(os.getenv("KNOWLEDGE_DIR", str(BACKEND_DIR / "knowledge")))
INDEX_PATH = Path(os.getenv("INDEX_PATH", str(KNOWLEDGE_DIR / "index.json")))

# Chunking Configuration
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))  # characters
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "150"))  # characters
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "10"))
EMBED_BATCH_DELAY = 0.2  # seconds between embedding batches

# Retrieval Configuration
RAG_TOP_K = int(os.getenv("RAG_TOP_K", "5"))
MIN_QUERY_LENGTH = 10  # shorter queries skip retrieval
MAX_CONTEXT_TOKENS = int(os.getenv("MAX_CONTEXT_TOKENS", "3000"))

# Fact lookup
TUTOR_LIST_LIMIT = 5

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
