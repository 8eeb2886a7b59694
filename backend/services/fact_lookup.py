"""Read-only structured fact lookups over the marketplace database (Supabase)."""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from supabase import create_client, Client

from models.tutor import PricingSummary, Tutor, TutorRatings, hourly_price
from services.errors import DataLookupFailure
from config import SUPABASE_URL, SUPABASE_KEY

logger = logging.getLogger(__name__)


class FactLookup(Protocol):
    """Structured facts the chatbot may quote verbatim."""

    def get_tutor_by_name(self, name: str) -> Optional[Tutor]: ...

    def list_tutors_by_subject(self, subject: str, limit: int = 5) -> List[Tutor]: ...

    def list_all_tutors(self, limit: int = 10) -> List[Tutor]: ...

    def get_tutor_ratings(self, name: str) -> Optional[TutorRatings]: ...

    def get_pricing_summary(self) -> PricingSummary: ...

    def get_policy(self, key: str) -> Optional[str]: ...


class SupabaseFactLookup:
    """
    FactLookup backed by the marketplace `users` and `sessions` tables.

    Tutors are `users` rows with user_type = 'tutor'; their specialties are a
    text array and rate_per_10_min is the price of one 10-minute block.
    Ratings come from `sessions.rating`. Every database error is raised as
    DataLookupFailure.
    """

    USER_COLUMNS = "id, username, specialties, rate_per_10_min, bio, education, average_rating, review_count"

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        client: Optional[Client] = None
    ):
        """
        Initialize the lookup with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            client: Pre-built client (skips credential checks)

        Raises:
            ValueError: If no client is given and credentials are missing
        """
        if client is None:
            if not supabase_url or not supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")
            client = create_client(supabase_url, supabase_key)
        self.client = client
        logger.info("Initialized SupabaseFactLookup")

    def get_tutor_by_name(self, name: str) -> Optional[Tutor]:
        """Case-insensitive exact username match restricted to tutors."""
        row = self._find_tutor_row(name)
        if row is None:
            return None

        sessions = self._rated_sessions(row["id"])
        active = self._execute(
            self.client.table("sessions")
            .select("id", count="exact")
            .eq("tutor_id", row["id"])
            .eq("status", "active"),
            "count active sessions"
        )
        active_sessions = active.count or 0
        availability = (
            "Available now" if active_sessions == 0
            else f"{active_sessions} active session{'s' if active_sessions > 1 else ''}"
        )

        return self._to_tutor(row, sessions, availability_note=availability)

    def list_tutors_by_subject(self, subject: str, limit: int = 5) -> List[Tutor]:
        """Tutors with a specialty containing the subject (case-insensitive), cheapest first."""
        if not subject or not subject.strip():
            return self.list_all_tutors(limit)

        needle = subject.strip().lower()
        rows = [
            row for row in self._tutor_rows()
            if any(needle in str(spec).strip().lower() for spec in _as_list(row.get("specialties")))
        ]
        rows.sort(key=lambda r: (r.get("rate_per_10_min") is None, r.get("rate_per_10_min") or 0))
        logger.info(f"Found {len(rows)} tutors for subject \"{subject}\"")
        return [self._to_tutor(row) for row in rows[:limit]]

    def list_all_tutors(self, limit: int = 10) -> List[Tutor]:
        rows = sorted(self._tutor_rows(), key=lambda r: str(r.get("username", "")).lower())
        return [self._to_tutor(row) for row in rows[:limit]]

    def get_tutor_ratings(self, name: str) -> Optional[TutorRatings]:
        row = self._find_tutor_row(name)
        if row is None:
            return None

        sessions = self._rated_sessions(row["id"])
        ratings = [s["rating"] for s in sessions]
        review_dates = [_parse_timestamp(s.get("created_at")) for s in sessions]
        review_dates = [d for d in review_dates if d is not None]
        return TutorRatings(
            rating=f"{sum(ratings) / len(ratings):.1f}" if ratings else None,
            reviews_count=len(ratings),
            last_review_at=max(review_dates) if review_dates else None,
        )

    def get_pricing_summary(self) -> PricingSummary:
        prices = [
            hourly_price(row["rate_per_10_min"])
            for row in self._tutor_rows()
            if row.get("rate_per_10_min") is not None
        ]
        if not prices:
            return PricingSummary(min_price=None, max_price=None, avg_price=None, tutor_count=0)
        return PricingSummary(
            min_price=min(prices),
            max_price=max(prices),
            avg_price=sum(prices) / len(prices),
            tutor_count=len(prices),
        )

    def get_policy(self, key: str) -> Optional[str]:
        # The marketplace has no policy table; policy questions are answered from the knowledge base
        return None

    def _find_tutor_row(self, name: str) -> Optional[Dict[str, Any]]:
        # ilike without wildcards is a case-insensitive equality; escape the pattern characters
        pattern = name.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        result = self._execute(
            self.client.table("users")
            .select(self.USER_COLUMNS)
            .eq("user_type", "tutor")
            .ilike("username", pattern)
            .limit(1),
            f"look up tutor {name!r}"
        )
        return result.data[0] if result.data else None

    def _tutor_rows(self) -> List[Dict[str, Any]]:
        result = self._execute(
            self.client.table("users").select(self.USER_COLUMNS).eq("user_type", "tutor"),
            "list tutors"
        )
        return result.data or []

    def _rated_sessions(self, tutor_id: Any) -> List[Dict[str, Any]]:
        result = self._execute(
            self.client.table("sessions")
            .select("rating, created_at")
            .eq("tutor_id", tutor_id)
            .not_.is_("rating", "null"),
            f"load ratings for tutor {tutor_id}"
        )
        return [s for s in (result.data or []) if s.get("rating") is not None]

    def _to_tutor(
        self,
        row: Dict[str, Any],
        rated_sessions: Optional[Iterable[Dict[str, Any]]] = None,
        availability_note: Optional[str] = None
    ) -> Tutor:
        rate = row.get("rate_per_10_min")
        rate = float(rate) if rate is not None else None

        # Prefer the stored aggregate, fall back to the session ratings
        rating = row.get("average_rating")
        reviews = row.get("review_count")
        ratings = [s["rating"] for s in rated_sessions or []]
        if rating is None and ratings:
            rating = sum(ratings) / len(ratings)
        if reviews is None:
            reviews = len(ratings)

        return Tutor(
            name=row.get("username", ""),
            subjects=[str(s) for s in _as_list(row.get("specialties"))],
            price_per_hour=hourly_price(rate),
            rate_per_unit=rate,
            rating=f"{float(rating):.1f}" if rating is not None else None,
            reviews_count=int(reviews),
            bio=row.get("bio"),
            education=row.get("education"),
            availability_note=availability_note,
        )

    @staticmethod
    def _execute(query: Any, action: str) -> Any:
        try:
            return query.execute()
        except Exception as e:
            error_msg = f"Failed to {action}: {e}"
            logger.error(error_msg)
            raise DataLookupFailure(error_msg, details={"action": action}) from e


def _as_list(value: Any) -> List[Any]:
    """Postgres arrays may arrive as lists or as "{a,b}" strings."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        cleaned = value.strip("{}")
        return [s.strip().strip('"') for s in cleaned.split(",") if s.strip()]
    return []


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable review timestamp: {value!r}")
        return None
