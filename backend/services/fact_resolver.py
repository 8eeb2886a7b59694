"""Turn a classified intent into authoritative fact text for the prompt."""
import logging
from typing import Callable, Dict, List, Optional

from models.intent import Intent, IntentType
from models.tutor import Tutor, RATE_UNIT_MINUTES
from services.fact_lookup import FactLookup
from config import TUTOR_LIST_LIMIT

logger = logging.getLogger(__name__)


def format_price(price: Optional[float]) -> str:
    """Whole-dollar price such as "$30", or "Not set" when no price exists."""
    if price is None:
        return "Not set"
    return f"${int(round(price))}"


def format_rate(rate: Optional[float]) -> str:
    """Per-unit rate, keeping cents when the rate is fractional."""
    if rate is None:
        return "Not set"
    if float(rate).is_integer():
        return f"${int(rate)}"
    return f"${rate:.2f}"


def format_subjects(subjects: List[str]) -> str:
    """Title-case subjects for display; names with + or # (C++, C#) are kept as-is."""
    formatted = []
    for subject in subjects:
        if not subject:
            continue
        if "+" in subject or "#" in subject:
            formatted.append(subject)
        else:
            formatted.append(subject[:1].upper() + subject[1:].lower())
    return ", ".join(formatted) or "N/A"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


class FactResolver:
    """
    Resolve an Intent against the fact lookup into a plain-text fact block.

    Every list the resolver emits is introduced by an explicit count equal to
    the number of listed items, and an empty result is stated as "found 0"
    so the model cannot fill the gap with invented tutors. Lookup failures
    never propagate: they are logged and resolve to an empty string, letting
    the chat continue on retrieval context alone.
    """

    def __init__(self, fact_lookup: FactLookup, list_limit: int = TUTOR_LIST_LIMIT):
        """
        Initialize the resolver.

        Args:
            fact_lookup: Structured fact source
            list_limit: Maximum number of tutors listed per answer
        """
        self.fact_lookup = fact_lookup
        self.list_limit = list_limit

        self.handlers: Dict[IntentType, Callable[[Intent], str]] = {
            IntentType.TUTOR_PRICE_BY_NAME: self._resolve_price,
            IntentType.TUTORS_BY_SUBJECT: self._resolve_subject,
            IntentType.TUTOR_RATING_BY_NAME: self._resolve_rating,
            IntentType.PRICING_SUMMARY: self._resolve_pricing_summary,
            IntentType.POLICY: self._resolve_policy,
            IntentType.FREEFORM: lambda intent: "",
        }
        missing = set(IntentType) - set(self.handlers)
        if missing:
            raise ValueError(f"No fact handler for intents: {sorted(m.value for m in missing)}")

    def resolve(self, intent: Intent) -> str:
        """
        Produce the DB context for an intent.

        Args:
            intent: Classified intent with its slots

        Returns:
            Fact text (lines joined by newlines), or "" when there is nothing to say
        """
        try:
            db_context = self.handlers[intent.type](intent)
        except Exception as e:
            logger.error(
                f"Fact lookup failed for intent {intent.type.value}: {e}",
                extra={"intent": intent.type.value, "slots": intent.slots}
            )
            return ""

        if db_context:
            logger.info(f"Resolved {intent.type.value} facts ({len(db_context)} chars)")
        return db_context

    def _resolve_price(self, intent: Intent) -> str:
        name = intent.slot("name")
        if not name:
            logger.warning("Price intent without a tutor name")
            return ""

        tutor = self.fact_lookup.get_tutor_by_name(name)
        if tutor is None:
            logger.info(f"Tutor \"{name}\" not found in database")
            return f'Tutor "{name}" not found in database.'

        return (
            f"Tutor: {tutor.name} | Subjects: {format_subjects(tutor.subjects)} | "
            f"Price: {format_price(tutor.hourly_price)}/hr "
            f"({format_rate(tutor.rate_per_unit)}/{RATE_UNIT_MINUTES}min) | "
            f"Rating: {tutor.rating or 'N/A'} | Reviews: {tutor.reviews_count} | "
            f"Status: {tutor.availability_note or 'N/A'}"
        )

    def _resolve_subject(self, intent: Intent) -> str:
        subject = intent.slot("subject")

        if subject:
            tutors = self.fact_lookup.list_tutors_by_subject(subject, self.list_limit)
            if not tutors:
                return f'I searched the database for tutors with subject "{subject}" but found 0 tutors.'
            header = f'Found {_plural(len(tutors), "tutor")} for "{subject}":'
        else:
            tutors = self.fact_lookup.list_all_tutors(self.list_limit)
            if not tutors:
                return "I searched the database for tutors but found 0 tutors."
            header = f"Found {_plural(len(tutors), 'tutor')} on the platform:"

        lines = [header]
        lines.extend(self._tutor_line(position, tutor) for position, tutor in enumerate(tutors, start=1))
        return "\n".join(lines)

    def _resolve_rating(self, intent: Intent) -> str:
        name = intent.slot("name")
        if not name:
            logger.warning("Rating intent without a tutor name")
            return ""

        ratings = self.fact_lookup.get_tutor_ratings(name)
        if ratings is None:
            return f'No rating information found for tutor "{name}".'

        last_review = ratings.last_review_at.strftime("%Y-%m-%d") if ratings.last_review_at else "N/A"
        return (
            f"Tutor: {name} | Rating: {ratings.rating or 'N/A'} | "
            f"Reviews: {ratings.reviews_count} | Last review: {last_review}"
        )

    def _resolve_pricing_summary(self, intent: Intent) -> str:
        summary = self.fact_lookup.get_pricing_summary()
        if summary.tutor_count <= 0:
            return "No pricing information available."

        average = f"${summary.avg_price:.2f}/hr" if summary.avg_price is not None else "N/A"
        return (
            f"Pricing Summary: Min: {format_price(summary.min_price)}/hr | "
            f"Max: {format_price(summary.max_price)}/hr | "
            f"Average: {average} | Total tutors: {summary.tutor_count}"
        )

    def _resolve_policy(self, intent: Intent) -> str:
        key = intent.slot("key")
        if not key:
            return ""
        policy = self.fact_lookup.get_policy(key)
        return f"Policy ({key}): {policy}" if policy else ""

    @staticmethod
    def _tutor_line(position: int, tutor: Tutor) -> str:
        return (
            f"{position}. Tutor: {tutor.name} | Subjects: {format_subjects(tutor.subjects)} | "
            f"Price: {format_price(tutor.hourly_price)}/hr | "
            f"Rating: {tutor.rating or 'N/A'} | Reviews: {tutor.reviews_count}"
        )
