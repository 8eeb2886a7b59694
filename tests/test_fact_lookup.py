"""Unit tests for SupabaseFactLookup."""
import sys
from pathlib import Path
from types import SimpleNamespace

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch
from services.errors import DataLookupFailure
from services.fact_lookup import SupabaseFactLookup


class FakeQuery:
    """Minimal stand-in for the supabase-py query builder over in-memory rows."""

    def __init__(self, rows):
        self.rows = list(rows)
        self.count_requested = False
        self._negate = False

    def select(self, columns, count=None):
        self.count_requested = count == "exact"
        return self

    def eq(self, column, value):
        self.rows = [r for r in self.rows if r.get(column) == value]
        return self

    def ilike(self, column, pattern):
        needle = pattern.replace("\\_", "_").replace("\\%", "%").replace("\\\\", "\\").lower()
        self.rows = [r for r in self.rows if str(r.get(column, "")).lower() == needle]
        return self

    def limit(self, n):
        self.rows = self.rows[:n]
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def is_(self, column, value):
        assert value == "null"
        if self._negate:
            self.rows = [r for r in self.rows if r.get(column) is not None]
        else:
            self.rows = [r for r in self.rows if r.get(column) is None]
        self._negate = False
        return self

    def execute(self):
        return SimpleNamespace(data=self.rows, count=len(self.rows) if self.count_requested else None)


class FakeClient:
    def __init__(self, tables):
        self.tables = tables

    def table(self, name):
        return FakeQuery(self.tables.get(name, []))


@pytest.fixture
def tables():
    return {
        "users": [
            {"id": 1, "username": "John", "user_type": "tutor", "specialties": ["python", "c++"],
             "rate_per_10_min": 5, "bio": "CS grad", "education": "BSc", "average_rating": 4.5, "review_count": 2},
            {"id": 2, "username": "Mehak", "user_type": "tutor", "specialties": "{java,sql}",
             "rate_per_10_min": 4, "bio": None, "education": None, "average_rating": None, "review_count": None},
            {"id": 3, "username": "Amy", "user_type": "tutor", "specialties": ["Python"],
             "rate_per_10_min": None, "bio": None, "education": None, "average_rating": None, "review_count": 0},
            {"id": 4, "username": "Sam", "user_type": "student", "specialties": ["python"],
             "rate_per_10_min": 9, "bio": None, "education": None, "average_rating": None, "review_count": None},
        ],
        "sessions": [
            {"id": 10, "tutor_id": 2, "rating": 4, "status": "completed", "created_at": "2024-01-05T10:00:00Z"},
            {"id": 11, "tutor_id": 2, "rating": 5, "status": "completed", "created_at": "2024-02-07T10:00:00Z"},
            {"id": 12, "tutor_id": 2, "rating": None, "status": "active", "created_at": "2024-03-01T10:00:00Z"},
            {"id": 13, "tutor_id": 1, "rating": None, "status": "completed", "created_at": "2024-01-01T10:00:00Z"},
        ],
    }


@pytest.fixture
def lookup(tables):
    return SupabaseFactLookup(client=FakeClient(tables))


class TestSupabaseFactLookup:
    """Test suite for SupabaseFactLookup."""

    def test_requires_credentials(self):
        """Test that missing credentials are rejected without a client."""
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_KEY"):
            SupabaseFactLookup(supabase_url=None, supabase_key=None)

    @patch('services.fact_lookup.create_client')
    def test_creates_client(self, mock_create_client):
        SupabaseFactLookup(supabase_url="https://x.supabase.co", supabase_key="key")
        mock_create_client.assert_called_once_with("https://x.supabase.co", "key")

    def test_get_tutor_by_name_case_insensitive(self, lookup):
        tutor = lookup.get_tutor_by_name("john")

        assert tutor.name == "John"
        assert tutor.subjects == ["python", "c++"]
        assert tutor.rate_per_unit == 5.0
        assert tutor.hourly_price == 30
        assert tutor.rating == "4.5"
        assert tutor.reviews_count == 2
        assert tutor.availability_note == "Available now"

    def test_rating_falls_back_to_sessions(self, lookup):
        tutor = lookup.get_tutor_by_name("Mehak")

        assert tutor.subjects == ["java", "sql"]
        assert tutor.rating == "4.5"
        assert tutor.reviews_count == 2
        assert tutor.availability_note == "1 active session"

    def test_students_are_not_tutors(self, lookup):
        assert lookup.get_tutor_by_name("Sam") is None

    def test_unknown_tutor(self, lookup):
        assert lookup.get_tutor_by_name("Nobody") is None

    def test_list_by_subject_substring_cheapest_first(self, lookup):
        tutors = lookup.list_tutors_by_subject("Python", limit=5)
        assert [t.name for t in tutors] == ["John", "Amy"]

    def test_list_by_subject_limit(self, lookup):
        assert len(lookup.list_tutors_by_subject("python", limit=1)) == 1

    def test_list_by_subject_no_match(self, lookup):
        assert lookup.list_tutors_by_subject("Chemistry") == []

    def test_list_all_tutors(self, lookup):
        assert [t.name for t in lookup.list_all_tutors(limit=10)] == ["Amy", "John", "Mehak"]

    def test_get_tutor_ratings(self, lookup):
        ratings = lookup.get_tutor_ratings("Mehak")

        assert ratings.rating == "4.5"
        assert ratings.reviews_count == 2
        assert ratings.last_review_at.strftime("%Y-%m-%d") == "2024-02-07"

    def test_get_tutor_ratings_no_reviews(self, lookup):
        ratings = lookup.get_tutor_ratings("John")
        assert ratings.rating is None
        assert ratings.reviews_count == 0
        assert ratings.last_review_at is None

    def test_pricing_summary(self, lookup):
        summary = lookup.get_pricing_summary()

        assert summary.tutor_count == 2
        assert summary.min_price == 24
        assert summary.max_price == 30
        assert summary.avg_price == pytest.approx(27.0)

    def test_pricing_summary_no_prices(self):
        summary = SupabaseFactLookup(client=FakeClient({"users": []})).get_pricing_summary()
        assert summary.tutor_count == 0
        assert summary.avg_price is None

    def test_no_policy_table(self, lookup):
        assert lookup.get_policy("refund") is None

    def test_database_errors_wrapped(self):
        client = Mock()
        client.table.return_value.select.return_value.eq.return_value.execute.side_effect = RuntimeError("boom")

        with pytest.raises(DataLookupFailure, match="Failed to list tutors"):
            SupabaseFactLookup(client=client).list_all_tutors()
