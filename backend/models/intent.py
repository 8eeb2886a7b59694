"""Intent data models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class IntentType(str, Enum):
    """Closed set of chat intents."""
    TUTOR_PRICE_BY_NAME = "tutor_price_by_name"
    TUTORS_BY_SUBJECT = "tutors_by_subject"
    TUTOR_RATING_BY_NAME = "tutor_rating_by_name"
    PRICING_SUMMARY = "pricing_summary"
    POLICY = "policy"
    FREEFORM = "freeform"


@dataclass(frozen=True)
class Intent:
    """
    Classified purpose of a user message.

    Attributes:
        type: One of IntentType
        slots: Extracted values, e.g. {"name": "Mehak"} or {"subject": None}
        rule_triggered: Which classifier rule produced this intent
    """
    type: IntentType
    slots: Dict[str, Optional[str]] = field(default_factory=dict)
    rule_triggered: str = "default"

    def slot(self, key: str) -> Optional[str]:
        return self.slots.get(key)
