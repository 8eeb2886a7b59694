"""Tests for ChatOrchestrator: the full chat pipeline with fake collaborators."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from models.chunk import Chunk, KnowledgeIndex
from models.tutor import Tutor, PricingSummary
from services.chat_orchestrator import ChatOrchestrator
from services.context_assembler import ContextAssembler
from services.errors import ServiceUnavailable, UpstreamUnavailable, UpstreamError, ValidationError
from services.fact_resolver import FactResolver
from services.intent_classifier import IntentClassifier
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore


class WordEncoding:
    def encode(self, text):
        return text.split()


class FakeFactLookup:
    """In-memory FactLookup."""

    def __init__(self, tutors=()):
        self.tutors = list(tutors)

    def get_tutor_by_name(self, name):
        return next((t for t in self.tutors if t.name.lower() == name.lower()), None)

    def list_tutors_by_subject(self, subject, limit=5):
        matches = [t for t in self.tutors if any(subject.lower() in s.lower() for s in t.subjects)]
        return matches[:limit]

    def list_all_tutors(self, limit=10):
        return self.tutors[:limit]

    def get_tutor_ratings(self, name):
        return None

    def get_pricing_summary(self):
        return PricingSummary(None, None, None, 0)

    def get_policy(self, key):
        return None


@pytest.fixture
def llm_client():
    client = Mock()
    client.complete.return_value = "ok"
    return client


@pytest.fixture
def embedding_model():
    model = Mock()
    model.embed_text.return_value = [1.0, 0.0]
    return model


@pytest.fixture
def index_path(tmp_path):
    path = tmp_path / "index.json"
    VectorStore(path).save_index(KnowledgeIndex(
        model="nomic-embed-text",
        total_files=1,
        chunks=[
            Chunk("chunk_0", "Tutors set a rate per 10 minutes.", "pages/pricing.md#L1", "pricing", [1.0, 0.0]),
            Chunk("chunk_1", "Refunds take 5 business days.", "pages/refunds.md#L1", "refunds", [0.0, 1.0]),
        ],
    ))
    return path


def _orchestrator(tutors, index_path, embedding_model, llm_client):
    return ChatOrchestrator(
        classifier=IntentClassifier(),
        resolver=FactResolver(FakeFactLookup(tutors)),
        retrieval_engine=RetrievalEngine(VectorStore(index_path), embedding_model),
        assembler=ContextAssembler(3000, encoding=WordEncoding()),
        llm_client=llm_client,
        top_k=5,
        min_query_length=10,
    )


def _sent_messages(llm_client):
    return llm_client.complete.call_args.args[0]


class TestChatOrchestrator:
    """Test suite for ChatOrchestrator."""

    def test_price_question_grounded_in_db(self, index_path, embedding_model, llm_client):
        """Test that the tutor's hourly price reaches the model with the grounding rule."""
        john = Tutor(name="John", subjects=["python"], rate_per_unit=5.0, rating="4.5", reviews_count=3)
        orchestrator = _orchestrator([john], index_path, embedding_model, llm_client)

        reply = orchestrator.answer([{"role": "user", "content": "How much does John charge?"}], timeout=20)

        assert reply == "ok"
        sent = _sent_messages(llm_client)
        assert sent[0].role == "system"
        assert "NEVER invent" in sent[0].content
        assert "$30" in sent[1].content
        assert "Tutor: John" in sent[1].content
        assert llm_client.complete.call_args.kwargs["timeout"] == 20

    def test_zero_tutors_for_subject(self, index_path, embedding_model, llm_client):
        """Test that an empty subject search is stated as found 0 tutors."""
        john = Tutor(name="John", subjects=["python"], rate_per_unit=5.0)
        orchestrator = _orchestrator([john], index_path, embedding_model, llm_client)

        orchestrator.answer([{"role": "user", "content": "Which tutors are registered for Java?"}])

        sent = _sent_messages(llm_client)
        assert "found 0 tutors" in sent[1].content
        assert "do NOT list any tutors" in sent[0].content
        assert "Tutor: John" not in sent[1].content

    def test_docs_context_included(self, index_path, embedding_model, llm_client):
        orchestrator = _orchestrator([], index_path, embedding_model, llm_client)

        orchestrator.answer([{"role": "user", "content": "How are rates calculated here?"}])

        context = _sent_messages(llm_client)[1].content
        assert "Docs:\nTutors set a rate per 10 minutes.\n[source: pages/pricing.md#L1 | pricing]" in context

    def test_short_query_skips_retrieval(self, index_path, embedding_model, llm_client):
        orchestrator = _orchestrator([], index_path, embedding_model, llm_client)

        orchestrator.answer([{"role": "user", "content": "hello"}])

        embedding_model.embed_text.assert_not_called()
        assert _sent_messages(llm_client)[0].content == "hello"

    def test_no_index_still_answers(self, tmp_path, embedding_model, llm_client):
        """Test that a missing knowledge index is not an error."""
        orchestrator = _orchestrator([], tmp_path / "missing.json", embedding_model, llm_client)

        reply = orchestrator.answer([{"role": "user", "content": "What is this platform about?"}])

        assert reply == "ok"
        embedding_model.embed_text.assert_not_called()

    def test_retrieval_failure_degrades(self, index_path, embedding_model, llm_client):
        embedding_model.embed_text.side_effect = ServiceUnavailable("Embedding service unreachable")
        john = Tutor(name="John", subjects=["python"], rate_per_unit=5.0)
        orchestrator = _orchestrator([john], index_path, embedding_model, llm_client)

        reply = orchestrator.answer([{"role": "user", "content": "How much does John charge?"}])

        assert reply == "ok"
        context = _sent_messages(llm_client)[1].content
        assert "DB:" in context
        assert "Docs:" not in context

    def test_uses_last_user_message(self, index_path, embedding_model, llm_client):
        orchestrator = _orchestrator([], index_path, embedding_model, llm_client)
        messages = [
            {"role": "user", "content": "How much does John charge?"},
            {"role": "assistant", "content": "John charges $30/hr."},
            {"role": "user", "content": "refund policy please, how does it work?"},
        ]

        orchestrator.answer(messages)

        context = _sent_messages(llm_client)[1].content
        assert "User's question: refund policy please, how does it work?" in context

    @pytest.mark.parametrize("messages", [
        [],
        [{"role": "robot", "content": "hi"}],
        [{"role": "user", "content": "   "}],
        [{"role": "user"}],
    ])
    def test_invalid_messages(self, index_path, embedding_model, llm_client, messages):
        orchestrator = _orchestrator([], index_path, embedding_model, llm_client)

        with pytest.raises(ValidationError):
            orchestrator.answer(messages)

        llm_client.complete.assert_not_called()

    @pytest.mark.parametrize("error", [
        UpstreamUnavailable("Rate limit exceeded", code="RATE_LIMIT_ERROR"),
        UpstreamError("Groq API error", code="API_ERROR"),
    ])
    def test_completion_errors_propagate(self, index_path, embedding_model, llm_client, error):
        llm_client.complete.side_effect = error
        orchestrator = _orchestrator([], index_path, embedding_model, llm_client)

        with pytest.raises(type(error)):
            orchestrator.answer([{"role": "user", "content": "hello"}])
