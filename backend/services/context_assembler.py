"""Merge DB facts and retrieved passages into the prompt sent to the model."""
import logging
from typing import List, Optional, Sequence

import tiktoken

from models.chunk import ScoredChunk
from models.conversation import Message, SYSTEM, USER
from services.retrieval_engine import RetrievalEngine
from config import MAX_CONTEXT_TOKENS

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"

SYSTEM_INSTRUCTION = """You are TutorBot. Answer using ONLY the DB and Docs context provided.

ABSOLUTE RULES - NO EXCEPTIONS:
1. NEVER invent, make up, or add any tutor names, prices, ratings, or data that is NOT in the DB context.
2. Count the tutors in the DB context. If DB shows "Found 1 tutor", list ONLY 1 tutor. If DB shows "found 0 tutors", say you found 0 tutors.
3. Copy the EXACT tutor information from DB context. Do NOT change names, prices, or add details.
4. If DB context says "Found X tutors", list EXACTLY X tutors from the DB context - no more, no less.
5. If DB context shows 0 tutors, do NOT list any tutors. Reply: "I couldn't find any tutors for [subject] in our database. Try another subject or check spelling."
6. Do NOT use placeholders like "[Tutor Name]" or make up example tutors.
7. Do NOT estimate or calculate prices - use the EXACT price from DB context.
8. Keep answers concise and factual.
9. Format: Use the numbered list format from DB context (1. Tutor: ... 2. Tutor: ...).

The DB context shows the ACTUAL count and data. If it says "Found 1 tutor", there is only 1. Do not add more."""

QUESTION_REMINDER = (
    "IMPORTANT: Use ONLY the tutors listed in the DB context above. "
    "Do NOT invent, estimate, or add any tutors. If DB shows 1 tutor, list only 1. "
    "If DB shows 0 tutors, say you couldn't find any."
)


class ContextAssembler:
    """Budget the combined context in tokens and build the final message list."""

    def __init__(self, max_context_tokens: int = MAX_CONTEXT_TOKENS, encoding: Optional[object] = None):
        """
        Initialize the assembler.

        Args:
            max_context_tokens: Token budget for the combined context block
            encoding: Object with an encode(str) method (defaults to tiktoken o200k_base)
        """
        if max_context_tokens <= 0:
            raise ValueError("max_context_tokens must be positive")

        self.max_context_tokens = max_context_tokens
        # o200k_base approximates the Llama 3 tokenizer closely enough for budgeting
        self.encoding = encoding if encoding is not None else tiktoken.get_encoding("o200k_base")
        logger.info(f"Initialized ContextAssembler (budget: {max_context_tokens} tokens)")

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text))

    def combine(self, db_context: str, scored_chunks: Sequence[ScoredChunk]) -> str:
        """
        Join DB facts and retrieved chunks into one context block.

        DB facts are always kept whole. Chunks are dropped from the end
        (lowest relevance first) until the block fits the token budget.

        Args:
            db_context: Fact text from the resolver ("" when none)
            scored_chunks: Retrieved chunks, most relevant first

        Returns:
            "DB:\\n..." and/or "Docs:\\n..." sections, or "" when both are empty
        """
        db_part = f"DB:\n{db_context}" if db_context and db_context.strip() else ""
        usable = [sc for sc in scored_chunks if sc.chunk.text and sc.chunk.text.strip()]
        kept = list(usable)

        while True:
            docs_part = f"Docs:\n{RetrievalEngine.build_context(kept)}" if kept else ""
            combined = SECTION_SEPARATOR.join(part for part in (db_part, docs_part) if part)
            if not kept or self.count_tokens(combined) <= self.max_context_tokens:
                break
            kept.pop()

        dropped = len(usable) - len(kept)
        if dropped:
            logger.info(f"Dropped {dropped} chunks to fit the {self.max_context_tokens}-token context budget")
        if db_part and self.count_tokens(db_part) > self.max_context_tokens:
            logger.warning("DB context alone exceeds the context budget; sending it untruncated")

        return combined

    def build_messages(
        self,
        messages: List[Message],
        query: str,
        db_context: str,
        scored_chunks: Sequence[ScoredChunk]
    ) -> List[Message]:
        """
        Build the message list for the chat-completion call.

        With no context the conversation is returned unchanged. Otherwise the
        result is the grounding instruction, a user turn carrying the context
        and the question, then the caller's non-system messages in order.

        Args:
            messages: Conversation supplied by the caller
            query: Latest user question
            db_context: Fact text from the resolver
            scored_chunks: Retrieved chunks, most relevant first

        Returns:
            Messages to send to the model
        """
        combined = self.combine(db_context, scored_chunks)
        if not combined:
            logger.info("No DB or Docs context available, sending conversation as-is")
            return list(messages)

        context_turn = (
            f"Context:\n{combined}{SECTION_SEPARATOR}"
            f"User's question: {query}\n\n{QUESTION_REMINDER}"
        )
        return [
            Message(role=SYSTEM, content=SYSTEM_INSTRUCTION),
            Message(role=USER, content=context_turn),
            *(m for m in messages if m.role != SYSTEM),
        ]
