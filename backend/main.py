"""Main entry point for the TutorBot support chatbot API."""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import PORT, LOG_LEVEL, CORS_ORIGINS, LLM_TIMEOUT, RAG_TOP_K, MAX_CONTEXT_TOKENS
from logger import setup_logging
from models.api import ChatRequest, ChatResponse, ErrorResponse
from services.chat_orchestrator import ChatOrchestrator
from services.context_assembler import ContextAssembler
from services.embedding_model import EmbeddingModel
from services.errors import ValidationError, UpstreamUnavailable, UpstreamError
from services.fact_lookup import SupabaseFactLookup
from services.fact_resolver import FactResolver
from services.intent_classifier import IntentClassifier
from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore

# Initialize logging
setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="TutorBot Support Chatbot",
    description="RAG and intent-routing chat core for the tutoring marketplace",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
orchestrator: ChatOrchestrator = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global orchestrator

    logger.info("Initializing TutorBot services...")

    try:
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        retrieval_engine = RetrievalEngine(vector_store, embedding_model)
        logger.info(f"Knowledge index: {vector_store.count()} chunks")

        resolver = FactResolver(SupabaseFactLookup())
        logger.info("Initialized FactResolver")

        orchestrator = ChatOrchestrator(
            classifier=IntentClassifier(),
            resolver=resolver,
            retrieval_engine=retrieval_engine,
            assembler=ContextAssembler(MAX_CONTEXT_TOKENS),
            llm_client=LLMClient(),
            top_k=RAG_TOP_K,
        )

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed chat bodies are client errors (400), reported as {"error": ...}."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    logger.warning(f"Rejected request: {location}: {message}")
    return JSONResponse(
        status_code=400,
        content={"error": f"{location}: {message}" if location else message}
    )


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "TutorBot Support Chatbot API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "tutorbot-chat",
        "version": "1.0.0"
    }


@app.post(
    "/chat",
    response_model=ChatResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 500, 502, 503)}
)
def chat_endpoint(request: ChatRequest):
    """
    Answer a chat conversation.

    The last user message is classified, structured facts are looked up for
    it, knowledge passages are retrieved, and the model is asked to answer
    from that context only.

    Args:
        request: ChatRequest with the conversation messages

    Returns:
        ChatResponse with the reply, or {"error": ...} with status
        400 (invalid messages), 503 (upstream unavailable, with Retry-After),
        502 (upstream failed) or 500 (unexpected)
    """
    try:
        reply = orchestrator.answer(
            [m.model_dump() for m in request.messages],
            timeout=LLM_TIMEOUT
        )
        return ChatResponse(reply=reply)

    except ValidationError as e:
        logger.warning(f"Invalid chat request: {e.error.message}")
        return JSONResponse(status_code=400, content={"error": e.error.message})

    except UpstreamUnavailable as e:
        logger.error(f"Upstream unavailable: {e.error.code}: {e.error.message}")
        retry_after = e.error.details.get("retry_after", 30)
        return JSONResponse(
            status_code=503,
            content={"error": e.error.message, "code": e.error.code},
            headers={"Retry-After": str(retry_after)}
        )

    except UpstreamError as e:
        logger.error(f"Upstream error: {e.error.code}: {e.error.message}")
        return JSONResponse(
            status_code=502,
            content={"error": e.error.message, "code": e.error.code}
        )

    except Exception as e:
        logger.error(f"Unexpected error processing chat: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": "AI service failed"})


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting TutorBot Support Chatbot API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
