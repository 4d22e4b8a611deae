"""Unit tests for the suggestion payload schema."""
import pytest
from datetime import date

from coach.models.schemas import SuggestionPayload


@pytest.mark.unit
class TestSuggestionPayload:

    def test_camel_case_aliases(self):
        payload = SuggestionPayload.model_validate({
            "type": "event",
            "text": " hike ",
            "eventDate": "2026-10-17",
            "eventTime": "9:05",
            "recurring": "Weekly",
            "recurringDays": [6],
        })

        assert payload.kind == "event"
        assert payload.text == "hike"
        assert payload.event_date == date(2026, 10, 17)
        assert payload.event_time == "09:05"
        assert payload.recurring == "weekly"
        assert payload.recurring_days == [6]

    @pytest.mark.parametrize("value", [None, "null", "", "None"])
    def test_null_type(self, value):
        assert SuggestionPayload.model_validate({"type": value}).kind is None

    @pytest.mark.parametrize("value", ["reminder", "meeting", 3, ["event"]])
    def test_unknown_type_reads_as_none(self, value):
        payload = SuggestionPayload.model_validate({"type": value, "text": "walk"})

        assert payload.kind is None
        assert payload.text == "walk"

    def test_bad_optional_fields_become_none(self):
        payload = SuggestionPayload.model_validate({
            "type": "event",
            "text": 42,
            "eventDate": "next week",
            "eventTime": "25:00",
            "recurring": "hourly",
            "recurringDays": "not a list",
        })

        assert payload.text is None
        assert payload.event_date is None
        assert payload.event_time is None
        assert payload.recurring is None
        assert payload.recurring_days is None

    def test_recurring_days_filtered(self):
        payload = SuggestionPayload.model_validate({"type": "event", "recurringDays": [1, 1, 9, -1, "2", True, 3]})
        assert payload.recurring_days == [1, 3]

    def test_recurring_days_as_json_string(self):
        payload = SuggestionPayload.model_validate({"type": "event", "recurringDays": "[0, 6]"})
        assert payload.recurring_days == [0, 6]

    def test_datetime_string_keeps_date(self):
        payload = SuggestionPayload.model_validate({"type": "event", "eventDate": "2026-10-17T09:00:00"})
        assert payload.event_date == date(2026, 10, 17)

    def test_extra_keys_ignored(self):
        payload = SuggestionPayload.model_validate({"type": "daily_goal", "confidence": 0.9})
        assert payload.resolved_kind == "daily_goal"

    @pytest.mark.parametrize("goal_type,expected", [
        ("longterm", "longterm_goal"),
        ("daily", "daily_goal"),
        (None, "daily_goal"),
    ])
    def test_legacy_goal_kind(self, goal_type, expected):
        payload = SuggestionPayload.model_validate({"type": "goal", "goalType": goal_type})
        assert payload.resolved_kind == expected
