"""
Unit tests for IntentClassifier class.

Tests the ordered rule list for intent classification and slot extraction.
"""

import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.intent import IntentType
from services.intent_classifier import IntentClassifier


class TestIntentClassifier:
    """Test suite for IntentClassifier class."""

    @pytest.fixture
    def classifier(self):
        """Create an IntentClassifier instance for testing."""
        return IntentClassifier()

    # Rule order

    def test_rule_order_is_pinned(self, classifier):
        """Test that rules run in the documented order."""
        assert [intent_type for intent_type, _ in classifier.rules] == [
            IntentType.TUTOR_PRICE_BY_NAME,
            IntentType.TUTORS_BY_SUBJECT,
            IntentType.TUTOR_RATING_BY_NAME,
            IntentType.PRICING_SUMMARY,
            IntentType.POLICY,
            IntentType.FREEFORM,
        ]

    def test_every_intent_has_a_rule(self, classifier):
        assert {intent_type for intent_type, _ in classifier.rules} == set(IntentType)

    # Rule 1: tutor price by name

    @pytest.mark.parametrize("text,name", [
        ("What is Mehak's rate?", "Mehak"),
        ("How much does John charge?", "John"),
        ("What's the hourly price for Sarah Lee?", "Sarah Lee"),
        ("Mehak hourly rate", "Mehak"),
        ("price of tutor Ravi", "Ravi"),
        ("whats Anika's fee", "Anika"),
    ])
    def test_price_by_name(self, classifier, text, name):
        """Test that a price question naming a tutor extracts the name."""
        intent = classifier.classify(text)
        assert intent.type == IntentType.TUTOR_PRICE_BY_NAME
        assert intent.slots == {"name": name}
        assert intent.rule_triggered == "price_by_name"

    def test_price_without_name_falls_through(self, classifier):
        """Test that a price keyword alone does not produce a name-bound intent."""
        intent = classifier.classify("what are the hourly rates?")
        assert intent.type != IntentType.TUTOR_PRICE_BY_NAME

    def test_subject_is_not_a_name(self, classifier):
        """Test that a capitalized subject is never taken for a tutor name."""
        intent = classifier.classify("What's the hourly rate of Python tutors?")
        assert intent.type == IntentType.TUTORS_BY_SUBJECT
        assert intent.slots == {"subject": "Python"}

    # Rule 2: tutors by subject

    @pytest.mark.parametrize("text,subject", [
        ("Python tutors", "Python"),
        ("python tutor", "Python"),
        ("Which tutors are registered for Java?", "Java"),
        ("Tutors for JS", "JavaScript"),
        ("find me math tutors", "Mathematics"),
        ("Who teaches chemistry?", "Chemistry"),
        ("Do you have any C++ tutors?", "C++"),
        ("tutors who teach c#", "C#"),
        ("I need help with my Python homework", "Python"),
        ("Looking for tutors, I want to learn javascript", "JavaScript"),
    ])
    def test_tutors_by_subject(self, classifier, text, subject):
        """Test subject extraction and normalization."""
        intent = classifier.classify(text)
        assert intent.type == IntentType.TUTORS_BY_SUBJECT
        assert intent.slots == {"subject": subject}

    def test_javascript_is_not_java(self, classifier):
        """Test that the longer subject wins over its prefix."""
        assert classifier.find_known_subject("i want to learn javascript") == "JavaScript"
        assert classifier.find_known_subject("i want to learn java") == "Java"

    def test_unknown_subject_title_cased(self, classifier):
        intent = classifier.classify("economics tutors")
        assert intent.slots == {"subject": "Economics"}

    def test_show_all_tutors_has_no_subject(self, classifier):
        """Test that a general tutor request lists all tutors."""
        intent = classifier.classify("Show me all tutors")
        assert intent.type == IntentType.TUTORS_BY_SUBJECT
        assert intent.slots == {"subject": None}
        assert intent.rule_triggered == "tutor_seeking"

    def test_subject_without_learning_cue_is_not_a_request(self, classifier):
        """Test that merely mentioning a subject does not trigger a tutor search."""
        intent = classifier.classify("Is the python sdk documented?")
        assert intent.type == IntentType.FREEFORM

    # Rule 3: tutor rating by name

    @pytest.mark.parametrize("text,name", [
        ("What are Sarah's reviews?", "Sarah"),
        ("How is Mehak rated?", "Mehak"),
        ("ratings for John Smith", "John Smith"),
    ])
    def test_rating_by_name(self, classifier, text, name):
        intent = classifier.classify(text)
        assert intent.type == IntentType.TUTOR_RATING_BY_NAME
        assert intent.slots == {"name": name}

    # Rule 4: pricing summary

    @pytest.mark.parametrize("text", [
        "What's the average price of tutors?",
        "how much does tutoring cost",
        "pricing",
        "What are the prices for tutoring?",
        "what is the cheapest rate",
    ])
    def test_pricing_summary(self, classifier, text):
        intent = classifier.classify(text)
        assert intent.type == IntentType.PRICING_SUMMARY
        assert intent.slots == {}

    # Rule 5: policy

    @pytest.mark.parametrize("text,key", [
        ("refund policy", "refund"),
        ("I forgot my password and can't log in", "login"),
        ("Can I pay with PayPal?", "payment"),
        ("How do I book a session?", "booking"),
        ("How do I cancel?", "cancel"),
        ("Can I reschedule my session?", "reschedule"),
    ])
    def test_policy(self, classifier, text, key):
        intent = classifier.classify(text)
        assert intent.type == IntentType.POLICY
        assert intent.slots == {"key": key}
        assert intent.rule_triggered == f"policy_{key}"

    def test_policy_order_payment_before_refund(self, classifier):
        """Test that the first matching policy key wins."""
        intent = classifier.classify("I want a refund for my payment")
        assert intent.slots == {"key": "payment"}

    # Rule 6: default

    @pytest.mark.parametrize("text", ["asdkjh random text", "hello there", "What is TutorBot?"])
    def test_freeform(self, classifier, text):
        intent = classifier.classify(text)
        assert intent.type == IntentType.FREEFORM
        assert intent.slots == {}

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_input(self, classifier, text):
        intent = classifier.classify(text)
        assert intent.type == IntentType.FREEFORM
        assert intent.slots == {}

    # Invariants

    @pytest.mark.parametrize("text", [
        "What is the rate for the tutor?",
        "tutors for the",
        "Show me tutors teaching",
        "How much does the Tutor charge?",
        "What is Rate's rate?",
        "ratings for Tutors",
        "my tutors",
    ])
    def test_slot_values_never_excluded_words(self, classifier, text):
        """Test that connector and field words never become slot values."""
        intent = classifier.classify(text)
        for value in intent.slots.values():
            if value is not None:
                assert value.lower() not in IntentClassifier.EXCLUDED_WORDS

    def test_deterministic(self, classifier):
        """Test that the same text always yields the same intent."""
        texts = ["What is Mehak's rate?", "Python tutors", "refund policy", "asdkjh random text"]
        first = [classifier.classify(t) for t in texts]
        second = [IntentClassifier().classify(t) for t in texts]
        assert first == second
