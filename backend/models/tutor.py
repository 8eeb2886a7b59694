"""Tutor fact records returned by the fact lookup layer."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from numbers import Real
from typing import List, Optional

# Tutors set their price per 10-minute block; every hourly figure derives from this.
RATE_UNIT_MINUTES = 10
UNITS_PER_HOUR = 60 // RATE_UNIT_MINUTES


def hourly_price(rate_per_unit: Optional[float]) -> Optional[int]:
    """
    Convert a per-unit rate into an hourly price rounded to the nearest whole number.

    Args:
        rate_per_unit: Price of one RATE_UNIT_MINUTES block, or None if unset

    Returns:
        Hourly price, or None when no rate is set

    Raises:
        ValueError: If the rate is not a finite, non-negative number
    """
    if rate_per_unit is None:
        return None
    if isinstance(rate_per_unit, bool) or not isinstance(rate_per_unit, Real):
        raise ValueError(f"Rate must be numeric, got {rate_per_unit!r}")
    if not math.isfinite(rate_per_unit) or rate_per_unit < 0:
        raise ValueError(f"Rate must be a finite non-negative number, got {rate_per_unit!r}")
    # Round half up so 2.5 * 6 = 15 and 4.25 * 6 = 25.5 -> 26
    return int(math.floor(rate_per_unit * UNITS_PER_HOUR + 0.5))


@dataclass(frozen=True)
class Tutor:
    """A tutor as seen by the chatbot."""
    name: str
    subjects: List[str] = field(default_factory=list)
    price_per_hour: Optional[float] = None
    rate_per_unit: Optional[float] = None
    rating: Optional[str] = None  # already formatted, e.g. "4.5"
    reviews_count: int = 0
    bio: Optional[str] = None
    education: Optional[str] = None
    availability_note: Optional[str] = None

    @property
    def hourly_price(self) -> Optional[float]:
        """Hourly price derived from the per-unit rate, falling back to the stored hourly price."""
        if self.rate_per_unit is not None:
            return hourly_price(self.rate_per_unit)
        return self.price_per_hour


@dataclass(frozen=True)
class TutorRatings:
    """Aggregated review information for one tutor."""
    rating: Optional[str]
    reviews_count: int
    last_review_at: Optional[datetime] = None


@dataclass(frozen=True)
class PricingSummary:
    """Platform-wide hourly price statistics."""
    min_price: Optional[float]
    max_price: Optional[float]
    avg_price: Optional[float]
    tutor_count: int
