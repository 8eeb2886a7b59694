"""Chat pipeline: classify, resolve facts, retrieve passages, assemble, complete."""
import logging
from typing import Any, List, Optional

from models.chunk import ScoredChunk
from models.conversation import Message, USER, VALID_ROLES, as_messages
from services.context_assembler import ContextAssembler
from services.errors import ValidationError
from services.fact_resolver import FactResolver
from services.intent_classifier import IntentClassifier
from services.llm_client import LLMClient
from services.retrieval_engine import RetrievalEngine
from config import RAG_TOP_K, MIN_QUERY_LENGTH

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """Answers one chat request end to end."""

    def __init__(
        self,
        classifier: IntentClassifier,
        resolver: FactResolver,
        retrieval_engine: RetrievalEngine,
        assembler: ContextAssembler,
        llm_client: LLMClient,
        top_k: int = RAG_TOP_K,
        min_query_length: int = MIN_QUERY_LENGTH
    ):
        self.classifier = classifier
        self.resolver = resolver
        self.retrieval_engine = retrieval_engine
        self.assembler = assembler
        self.llm_client = llm_client
        self.top_k = top_k
        self.min_query_length = min_query_length
        logger.info("Initialized ChatOrchestrator")

    def answer(self, messages: List[Any], timeout: Optional[float] = None) -> str:
        """
        Produce the assistant reply for a conversation.

        Steps:
        1. Validate the messages and take the last user message as the query
        2. Classify the query and resolve structured facts for it
        3. Retrieve knowledge passages (only for queries longer than
           min_query_length; failures degrade to no passages)
        4. Assemble the grounded prompt and call the model

        Args:
            messages: Conversation as Message objects or {role, content} dicts
            timeout: Completion timeout in seconds

        Returns:
            Reply text from the model

        Raises:
            ValidationError: If the message list is malformed
            UpstreamUnavailable, UpstreamError: If the completion call fails
        """
        conversation = self.validate_messages(messages)
        query = self.extract_query(conversation)
        logger.info(f"User query: \"{query[:100]}\"")

        intent = self.classifier.classify(query)
        logger.info(
            f"Detected intent: {intent.type.value}",
            extra={"intent": intent.type.value, "slots": intent.slots, "rule": intent.rule_triggered}
        )

        db_context = self.resolver.resolve(intent)
        scored_chunks = self._retrieve_chunks(query)

        prompt_messages = self.assembler.build_messages(conversation, query, db_context, scored_chunks)
        return self.llm_client.complete(prompt_messages, timeout=timeout)

    @staticmethod
    def validate_messages(messages: List[Any]) -> List[Message]:
        """
        Check the inbound message list.

        Raises:
            ValidationError: Empty list, unknown role or empty content
        """
        if not isinstance(messages, (list, tuple)) or len(messages) == 0:
            raise ValidationError("messages array is required and must not be empty")

        conversation = as_messages(list(messages))
        for position, message in enumerate(conversation):
            if message.role not in VALID_ROLES:
                raise ValidationError(
                    "Message role must be 'system', 'user', or 'assistant'",
                    details={"index": position, "role": message.role}
                )
            if not isinstance(message.content, str) or not message.content.strip():
                raise ValidationError(
                    "Each message must have non-empty 'content'",
                    details={"index": position}
                )
        return conversation

    @staticmethod
    def extract_query(conversation: List[Message]) -> str:
        """Content of the last user message, or "" if there is none."""
        for message in reversed(conversation):
            if message.role == USER:
                return message.content.strip()
        return ""

    def _retrieve_chunks(self, query: str) -> List[ScoredChunk]:
        if len(query) <= self.min_query_length:
            logger.debug("Query too short for retrieval, skipping")
            return []

        try:
            return self.retrieval_engine.retrieve(query, top_k=self.top_k)
        except Exception as e:
            logger.error(f"Retrieval failed, continuing without Docs context: {e}")
            return []
