"""Unit tests for onboarding extraction."""
import pytest
from datetime import datetime, timezone

from coach.services.onboarding_extractor import (
    Confidence,
    ExtractionResult,
    OnboardingExtractor,
    build_profile_fragment,
    score_confidence,
)


@pytest.fixture
def extractor():
    """Extractor with the default limits."""
    return OnboardingExtractor(min_length=20, max_goals=10)


@pytest.mark.unit
class TestScenario:
    """A complete, well-formed onboarding answer."""

    def test_alex(self, extractor, alex_onboarding):
        result = extractor.extract(alex_onboarding)

        assert result.summary == "Alex"
        assert list(result.goals) == ["Get fit", "learn Python", "improve focus"]
        tone = result.preferences.tone
        assert "supportive" in tone or "energizing" in tone
        assert result.confidence is Confidence.HIGH

    def test_idempotent(self, extractor, alex_onboarding):
        """Same input, same result."""
        assert extractor.extract(alex_onboarding) == extractor.extract(alex_onboarding)


@pytest.mark.unit
class TestConfidence:

    def test_ordering(self):
        assert Confidence.LOW < Confidence.MEDIUM < Confidence.HIGH
        assert Confidence.HIGH >= Confidence.MEDIUM
        assert Confidence.HIGH > Confidence.LOW
        assert Confidence.MEDIUM <= Confidence.MEDIUM
        assert max(Confidence.MEDIUM, Confidence.HIGH, Confidence.LOW) is Confidence.HIGH
        assert not Confidence.LOW.persistable
        assert Confidence.MEDIUM.persistable

    @pytest.mark.parametrize("name,goals,tone,expected", [
        (True, True, True, Confidence.HIGH),
        (True, True, False, Confidence.MEDIUM),
        (False, True, True, Confidence.MEDIUM),
        (True, False, True, Confidence.LOW),
        (False, True, False, Confidence.LOW),
        (False, False, False, Confidence.LOW),
    ])
    def test_score(self, name, goals, tone, expected):
        assert score_confidence(name, goals, tone) is expected

    def test_adding_fields_never_lowers_confidence(self, extractor):
        """Goals only, then a name, then a tone."""
        goals_only = extractor.extract("Goals: run a marathon; sleep more")
        with_name = extractor.extract("My name is Sam. Goals: run a marathon; sleep more")
        with_tone = extractor.extract("My name is Sam. Goals: run a marathon; sleep more. Tone: firm")

        assert goals_only.confidence is Confidence.LOW
        assert with_name.confidence is Confidence.MEDIUM
        assert with_tone.confidence is Confidence.HIGH
        assert goals_only.confidence <= with_name.confidence <= with_tone.confidence


@pytest.mark.unit
class TestGoals:

    def test_case_insensitive_dedup(self, extractor):
        """Only the first spelling of a repeated goal survives."""
        result = extractor.extract("Goals: fitness, Fitness, GET FIT")

        assert [goal.lower() for goal in result.goals].count("fitness") == 1
        assert result.goals[0] == "fitness"

    def test_never_splits_on_and(self, extractor):
        result = extractor.extract("Goals: run and swim; read books")
        assert result.goals == ("run and swim", "read books")

    def test_and_inside_a_single_goal(self, extractor):
        result = extractor.extract("Goals: Learn machine and deep learning")
        assert result.goals == ("Learn machine and deep learning",)

    def test_leading_conjunctions_are_stripped(self, extractor):
        result = extractor.extract("Goals: run 5k, and read books, or swim laps")
        assert result.goals == ("run 5k", "read books", "swim laps")

    def test_bullet_list(self, extractor):
        text = "My name is Jo\nGoals:\n- run a 10k\n- learn Spanish\n* sleep 8 hours"
        result = extractor.extract(text)

        assert result.summary == "Jo"
        assert result.goals == ("run a 10k", "learn Spanish", "sleep 8 hours")

    def test_too_short_goals_are_dropped(self, extractor):
        result = extractor.extract("Goals: ab, run a marathon")
        assert result.goals == ("run a marathon",)

    def test_intent_sentences(self, extractor):
        result = extractor.extract("Hi there. I want to run a marathon. I'd like to read more books!")
        assert result.goals == ("run a marathon", "read more books")

    def test_cap_with_warning(self, extractor):
        text = "Goals: " + ", ".join(f"goal number {i}" for i in range(12))
        result = extractor.extract(text)

        assert len(result.goals) == 10
        assert result.goals[-1] == "goal number 9"
        assert "Extracted 12 goals - truncating to 10" in result.warnings


@pytest.mark.unit
class TestNameAndTone:

    def test_i_am_needs_goal_or_tone_context(self, extractor):
        result = extractor.extract("I am Priya and I love long walks on the beach")

        assert result.summary is None
        assert any("name" in warning for warning in result.warnings)

    def test_i_am_with_context(self, extractor):
        result = extractor.extract("I am Priya. I want to learn piano. I prefer encouraging feedback.")

        assert result.summary == "Priya"
        assert result.goals == ("learn piano",)
        assert result.preferences.tone == "encouraging"
        assert result.confidence is Confidence.HIGH

    def test_firm_outside_preference_context_is_not_tone(self, extractor):
        result = extractor.extract("I'm firm about my commitment. I want to run a marathon")

        assert result.preferences.tone is None
        assert result.summary is None
        assert result.goals == ("run a marathon",)

    def test_tone_keyword_in_preference_context(self, extractor):
        result = extractor.extract("My name is Dana and I prefer gentle reminders. I want to meditate daily")

        assert result.summary == "Dana"
        assert result.preferences.tone == "gentle"
        assert result.confidence is Confidence.HIGH

    def test_tone_field_is_lowercased(self, extractor):
        result = extractor.extract("Goals: journal daily. Tone: Tough-Love")
        assert result.preferences.tone == "tough-love"


@pytest.mark.unit
class TestShortInput:

    def test_short_text_is_low_with_single_warning(self, extractor):
        result = extractor.extract("  hi there  ")

        assert result == ExtractionResult(
            summary=None,
            confidence=Confidence.LOW,
            warnings=("Text too short to parse reliably",),
        )

    def test_none_text(self, extractor):
        assert extractor.extract(None).confidence is Confidence.LOW


@pytest.mark.unit
class TestProfileFragment:

    def test_fragment_from_high_result(self, extractor, alex_onboarding, fixed_now):
        fragment = build_profile_fragment(extractor.extract(alex_onboarding), fixed_now)

        assert fragment.summary == "Alex"
        assert fragment.goals == {"2026": ["Get fit", "learn Python", "improve focus"]}
        assert fragment.preferences == {"tone": "supportive and energizing"}
        assert fragment.extraction_confidence is Confidence.HIGH
        assert fragment.to_dict()["extractedAt"] == fixed_now.isoformat()
        assert fragment.to_dict()["extractionConfidence"] == "high"

    def test_only_present_fields(self, extractor):
        now = datetime(2027, 1, 2, tzinfo=timezone.utc)
        fragment = build_profile_fragment(
            extractor.extract("My name is Sam. Goals: run a marathon; sleep more"), now
        )

        assert fragment.preferences is None
        assert "preferences" not in fragment.to_dict()
        assert fragment.goals == {"2027": ["run a marathon", "sleep more"]}

    def test_low_is_never_persisted(self, extractor):
        with pytest.raises(ValueError):
            build_profile_fragment(extractor.extract("hello"))
