"""
Intent Classifier for the TutorBot support chatbot.

This module maps a free-text user message to one intent of a closed taxonomy
plus extracted slots (tutor name, subject, policy key), using an ordered list
of regular-expression rules. The first rule that produces an intent wins.
"""

import logging
import re
from typing import Callable, List, Optional, Tuple

from models.intent import Intent, IntentType

logger = logging.getLogger(__name__)

# A capitalized first name with an optional capitalized last name, matched on the original casing
_NAME = r"([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)?)"
# Subject-like text: lowercase words that may contain + # . (c++, c#, node.js)
_SUBJECT = r"([a-z0-9+#.][a-z0-9+#.\s]{0,30})"

Matcher = Callable[[str, str], Optional[Intent]]


class IntentClassifier:
    """
    Deterministic rule-based intent classifier.

    Rules are evaluated in RULE_ORDER; more specific name-bound rules come
    before the generic subject, summary and policy rules. The classifier is
    stateless and performs no I/O.
    """

    RULE_ORDER = (
        IntentType.TUTOR_PRICE_BY_NAME,
        IntentType.TUTORS_BY_SUBJECT,
        IntentType.TUTOR_RATING_BY_NAME,
        IntentType.PRICING_SUMMARY,
        IntentType.POLICY,
        IntentType.FREEFORM,
    )

    # Field, domain and connector words that are never a tutor name or a subject
    EXCLUDED_WORDS = frozenset({
        "hourly", "rate", "rates", "price", "prices", "pricing", "fee", "fees",
        "cost", "costs", "charge", "charges", "tutor", "tutors", "tutor's", "tutoring",
        "what", "what's", "whats", "is", "are", "the", "for", "of", "show", "list",
        "find", "get", "tell", "me", "subject", "subjects", "teaching", "teach",
        "teaches", "available", "registered", "who", "how", "much", "does", "do",
        "can", "could", "would", "will", "you", "i", "a", "an", "any", "some", "all",
        "my", "your", "our", "their", "in", "on", "with", "and", "or", "to", "please",
        "need", "want", "looking", "there", "have", "has", "which", "where", "when",
        "rating", "ratings", "rated", "review", "reviews", "feedback", "session",
        "sessions", "lesson", "lessons", "class", "classes", "platform", "average",
        "policy", "online", "good", "best", "top", "hi", "hello", "hey", "thanks",
        "about", "per", "hour", "hr", "it", "this", "that", "be", "learn", "help",
        "now", "today", "here", "other", "more", "many", "cheap", "cheapest",
    })

    # Known subjects and their synonyms, normalized to display form
    SUBJECT_SYNONYMS = {
        "python": "Python",
        "java": "Java",
        "javascript": "JavaScript",
        "js": "JavaScript",
        "c++": "C++",
        "cpp": "C++",
        "c#": "C#",
        "csharp": "C#",
        "computer science": "Computer Science",
        "cs": "Computer Science",
        "math": "Mathematics",
        "maths": "Mathematics",
        "mathematics": "Mathematics",
        "physics": "Physics",
        "chemistry": "Chemistry",
        "biology": "Biology",
        "english": "English",
        "history": "History",
        "science": "Science",
        "react": "React",
        "node": "Node.js",
        "nodejs": "Node.js",
        "node.js": "Node.js",
        "sql": "SQL",
        "database": "Database",
        "databases": "Database",
        "algorithms": "Algorithms",
        "data structures": "Data Structures",
        "data structure": "Data Structures",
    }

    # Policy keys, checked in order; the first match wins
    POLICY_PATTERNS = (
        ("login", re.compile(
            r"\b(?:login|log\s+in|sign\s+in|signin|account\s+access|password\s+reset|"
            r"reset\s+(?:my\s+)?password|forgot\s+(?:my\s+)?password)\b", re.I)),
        ("payment", re.compile(
            r"\b(?:payments?|pay|paying|billing|charged|invoices?|transactions?|checkout)\b", re.I)),
        ("refund", re.compile(r"\b(?:refunds?|refunded|money\s+back|return)\b|\bcancel\b.*\bpayment", re.I)),
        ("booking", re.compile(r"\b(?:book|booking|schedule|reservations?|appointments?)\b", re.I)),
        ("cancel", re.compile(r"\b(?:cancel|cancellation|cancelling|canceling)\b|\bterminate\b.*\bsession", re.I)),
        ("reschedule", re.compile(
            r"\b(?:reschedule|rescheduling|postpone)\b|\bchange\b.*\btime\b|\bmove\b.*\bsession", re.I)),
    )

    PRICE_KEYWORDS = re.compile(r"\b(?:hourly|rates?|prices?|fees?|costs?|charges?|charging)\b|\bhow\s+much\b")
    RATING_KEYWORDS = re.compile(r"\b(?:ratings?|rated|reviews?|feedback|stars?)\b")

    # Name extraction, tried in order on the original casing
    NAME_PATTERNS = (
        # "Mehak's rate", "John Smith's hourly price", "Sarah's reviews"
        re.compile(_NAME + r"['’]s\s+(?i:hourly\s+)?(?i:rates?|prices?|fees?|cost|charges?|ratings?|reviews?|feedback)\b"),
        # "John rate", "Mehak hourly price"
        re.compile(_NAME + r"\s+(?i:hourly\s+)?(?i:rates?|prices?|fees?|ratings?|reviews?)\b"),
        # "rate for Mehak", "reviews of tutor John"
        re.compile(r"(?i:rates?|prices?|fees?|cost|ratings?|reviews?)\s+(?i:for|of)\s+(?i:tutor\s+)?" + _NAME),
        # "does John charge", "is Sarah rated"
        re.compile(r"(?i:does|do|is)\s+" + _NAME + r"\s+(?i:charge|cost|rated)\b"),
        # "tutor Mehak"
        re.compile(r"(?i:tutor)\s+" + _NAME),
        # "Mehak tutor"
        re.compile(_NAME + r"\s+(?i:tutor)\b"),
    )

    # Subject extraction, tried in order on lowercased text
    SUBJECT_PATTERNS = (
        # "tutors registered for java", "tutors who teach c++", "tutor for js"
        re.compile(
            r"\btutors?\s+(?:(?:who|that)\s+(?:are\s+)?|are\s+)?"
            r"(?:registered\s+for|for|in|teaching|teach(?:es)?)\s+" + _SUBJECT),
        # "python tutors", "find me physics tutors"
        re.compile(r"([a-z0-9+#.]+(?:\s+[a-z0-9+#.]+)?)\s+tutors?\b"),
        # "who teaches chemistry", "who is registered for physics"
        re.compile(r"\bwho\s+(?:teach(?:es)?|tutors?|is\s+registered\s+for|are\s+registered\s+for)\s+" + _SUBJECT),
    )

    TUTOR_SEEKING_PATTERNS = (
        re.compile(
            r"\b(?:find|search|show|list|available|get|need|want|looking\s+for|tell\s+me|any|all|who\s+are)\b"
            r".*\btutors?\b"),
        re.compile(r"\btutors?\b.*\b(?:available|under|below|less\s+than|registered|subjects?)\b"),
    )

    LEARNING_CUE = re.compile(
        r"\b(?:learn|learning|study|studying|teach|teaches|taught|lessons?|classes|tutoring|help\s+with)\b")

    PRICING_SUMMARY_PATTERNS = (
        re.compile(
            r"\b(?:what|how\s+much|tell\s+me|show\s+me)\b.*\b(?:prices?|pricing|costs?|fees|rates)\b"
            r".*\b(?:tutors?|tutoring|platform|service|sessions?)\b"),
        re.compile(r"\b(?:prices?|pricing|costs?|fees|rates)\b.*\b(?:tutors?|tutoring|platform|service|general|average)\b"),
        re.compile(r"\b(?:average|typical|usual|normal|cheapest|lowest|highest)\b.*\b(?:prices?|costs?|fees?|rates?)\b"),
        re.compile(r"\bhow\s+much\b.*\b(?:cost|costs|charge|pay)\b"),
        re.compile(r"^(?:prices?|pricing|costs?|fees|rates|how\s+much)\W*$"),
    )

    _SUBJECT_KEY_PATTERNS: List[Tuple[re.Pattern, str]] = [
        (re.compile(r"(?<![a-z0-9+#])" + re.escape(key) + r"(?![a-z0-9+#])"), value)
        # Longest keys first so "javascript" wins over "java"
        for key, value in sorted(SUBJECT_SYNONYMS.items(), key=lambda kv: len(kv[0]), reverse=True)
    ]

    def __init__(self):
        matchers = {
            IntentType.TUTOR_PRICE_BY_NAME: self._match_tutor_price,
            IntentType.TUTORS_BY_SUBJECT: self._match_tutors_by_subject,
            IntentType.TUTOR_RATING_BY_NAME: self._match_tutor_rating,
            IntentType.PRICING_SUMMARY: self._match_pricing_summary,
            IntentType.POLICY: self._match_policy,
            IntentType.FREEFORM: self._match_freeform,
        }
        self.rules: List[Tuple[IntentType, Matcher]] = [
            (intent_type, matchers[intent_type]) for intent_type in self.RULE_ORDER
        ]

    def classify(self, text: Optional[str]) -> Intent:
        """
        Classify a user message.

        Args:
            text: Raw user message

        Returns:
            Intent with type and slots; freeform with empty slots when nothing matches
        """
        if not text or not isinstance(text, str) or not text.strip():
            return Intent(type=IntentType.FREEFORM, slots={}, rule_triggered="empty")

        original = text.strip()
        lower = original.lower()

        for intent_type, matcher in self.rules:
            intent = matcher(original, lower)
            if intent is not None:
                logger.info(
                    f"Classification: {intent.type.value} ({intent.rule_triggered}) - {original[:50]}"
                )
                return intent

        # Unreachable: the freeform rule always matches
        return Intent(type=IntentType.FREEFORM, slots={})

    # Rule 1: tutor price by name

    def _match_tutor_price(self, text: str, lower: str) -> Optional[Intent]:
        if not self.PRICE_KEYWORDS.search(lower):
            return None
        name = self.extract_tutor_name(text)
        if name is None:
            return None
        return Intent(IntentType.TUTOR_PRICE_BY_NAME, {"name": name}, rule_triggered="price_by_name")

    # Rule 2: tutors by subject

    def _match_tutors_by_subject(self, text: str, lower: str) -> Optional[Intent]:
        for pattern in self.SUBJECT_PATTERNS:
            for match in pattern.finditer(lower):
                subject = self.normalize_subject(match.group(1))
                if subject:
                    return Intent(IntentType.TUTORS_BY_SUBJECT, {"subject": subject},
                                  rule_triggered="subject_phrase")

        if any(p.search(lower) for p in self.TUTOR_SEEKING_PATTERNS):
            # Asking for tutors; a subject may still be mentioned elsewhere
            subject = self.find_known_subject(lower)
            return Intent(IntentType.TUTORS_BY_SUBJECT, {"subject": subject},
                          rule_triggered="tutor_seeking")

        if self.LEARNING_CUE.search(lower):
            subject = self.find_known_subject(lower)
            if subject:
                return Intent(IntentType.TUTORS_BY_SUBJECT, {"subject": subject},
                              rule_triggered="learning_subject")
        return None

    # Rule 3: tutor rating by name

    def _match_tutor_rating(self, text: str, lower: str) -> Optional[Intent]:
        if not self.RATING_KEYWORDS.search(lower):
            return None
        name = self.extract_tutor_name(text)
        if name is None:
            return None
        return Intent(IntentType.TUTOR_RATING_BY_NAME, {"name": name}, rule_triggered="rating_by_name")

    # Rule 4: pricing summary

    def _match_pricing_summary(self, text: str, lower: str) -> Optional[Intent]:
        if any(p.search(lower) for p in self.PRICING_SUMMARY_PATTERNS):
            return Intent(IntentType.PRICING_SUMMARY, {}, rule_triggered="pricing_summary")
        return None

    # Rule 5: policy

    def _match_policy(self, text: str, lower: str) -> Optional[Intent]:
        for key, pattern in self.POLICY_PATTERNS:
            if pattern.search(text):
                return Intent(IntentType.POLICY, {"key": key}, rule_triggered=f"policy_{key}")
        return None

    # Rule 6: default

    def _match_freeform(self, text: str, lower: str) -> Optional[Intent]:
        return Intent(IntentType.FREEFORM, {}, rule_triggered="default")

    # Slot extraction

    def extract_tutor_name(self, text: str) -> Optional[str]:
        """
        Extract a tutor name from the original-cased text.

        Returns:
            The name, or None if nothing outside the excluded words looks like a name
        """
        for pattern in self.NAME_PATTERNS:
            for match in pattern.finditer(text):
                name = self._clean_name(match.group(1))
                if name:
                    return name

        # Fallback: first capitalized word (plus a capitalized surname) that is not excluded
        words = [self._strip_word(w) for w in text.split()]
        for i, word in enumerate(words):
            if len(word) > 2 and re.fullmatch(r"[A-Z][a-z]+", word) and self._is_name_word(word):
                if i + 1 < len(words):
                    next_word = words[i + 1]
                    if re.fullmatch(r"[A-Z][a-z]+", next_word) and self._is_name_word(next_word):
                        return f"{word} {next_word}"
                return word
        return None

    def normalize_subject(self, candidate: str) -> Optional[str]:
        """
        Normalize a captured subject phrase.

        Known subjects and synonyms map to their display form; anything else
        is title-cased. Returns None if only excluded words remain.
        """
        words = candidate.strip(" .").split()
        while words and words[0] in self.EXCLUDED_WORDS:
            words.pop(0)
        while words and words[-1] in self.EXCLUDED_WORDS:
            words.pop()
        if not words:
            return None

        phrase = " ".join(words)
        known = self.find_known_subject(phrase)
        if known:
            return known

        normalized = " ".join(w[:1].upper() + w[1:] for w in words)
        if not 1 < len(normalized) < 50 or normalized.lower() in self.EXCLUDED_WORDS:
            return None
        return normalized

    def find_known_subject(self, lower_text: str) -> Optional[str]:
        """Return the display form of the first (longest) known subject in the text."""
        for pattern, value in self._SUBJECT_KEY_PATTERNS:
            if pattern.search(lower_text):
                return value
        return None

    def _clean_name(self, candidate: str) -> Optional[str]:
        parts = candidate.split()
        while parts and not self._is_name_word(parts[0]):
            parts.pop(0)
        while parts and not self._is_name_word(parts[-1]):
            parts.pop()
        if not parts:
            return None
        name = " ".join(parts)
        if name.lower() in self.EXCLUDED_WORDS or self._is_subject(name):
            return None
        return name

    def _is_name_word(self, word: str) -> bool:
        lower = word.lower()
        return lower not in self.EXCLUDED_WORDS and not self._is_subject(lower)

    def _is_subject(self, word: str) -> bool:
        lower = word.lower()
        return lower in self.SUBJECT_SYNONYMS or any(
            lower == value.lower() for value in self.SUBJECT_SYNONYMS.values()
        )

    @staticmethod
    def _strip_word(word: str) -> str:
        word = re.sub(r"['’]s$", "", word.strip(".,!?\"():;"))
        return word.strip(".,!?'\"’():;")
