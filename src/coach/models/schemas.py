"""Pydantic schemas."""
import json
import re
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUGGESTION_KINDS = ("daily_goal", "longterm_goal", "event")
RECURRENCES = ("daily", "weekly", "biweekly", "monthly", "yearly")
_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class SuggestionPayload(BaseModel):
    """Suggestion JSON as proposed by the language model.

    Lenient on purpose: unusable optional fields become None instead of
    failing the whole payload. Only a wrong overall shape is rejected.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    kind: Optional[str] = Field(default=None, alias="type")
    goal_type: Optional[str] = Field(default=None, alias="goalType")
    text: Optional[str] = None
    reasoning: Optional[str] = None
    event_date: Optional[date] = Field(default=None, alias="eventDate")
    event_time: Optional[str] = Field(default=None, alias="eventTime")
    recurring: Optional[str] = None
    recurring_days: Optional[List[int]] = Field(default=None, alias="recurringDays")

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value):
        # Unknown kinds read as "no suggestion" so the override rules still run
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        if value not in SUGGESTION_KINDS + ("goal",):
            return None
        return value

    @field_validator("text", "reasoning", "goal_type", mode="before")
    @classmethod
    def _strip_text(cls, value):
        if value is None:
            return None
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("event_date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        if not isinstance(value, str):
            return None
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None

    @field_validator("event_time", mode="before")
    @classmethod
    def _parse_time(cls, value):
        if not isinstance(value, str):
            return None
        match = _HHMM_RE.match(value.strip())
        if not match:
            return None
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            return None
        return f"{hours:02d}:{minutes:02d}"

    @field_validator("recurring", mode="before")
    @classmethod
    def _normalize_recurring(cls, value):
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        return value if value in RECURRENCES else None

    @field_validator("recurring_days", mode="before")
    @classmethod
    def _parse_days(cls, value):
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return None
        if not isinstance(value, list):
            return None
        days = []
        for day in value:
            if isinstance(day, bool) or not isinstance(day, int):
                continue
            if 0 <= day <= 6 and day not in days:
                days.append(day)
        return days or None

    @property
    def resolved_kind(self) -> Optional[str]:
        """Kind with the older {"type": "goal", "goalType": ...} form folded in."""
        if self.kind == "goal":
            if (self.goal_type or "").lower() == "longterm":
                return "longterm_goal"
            return "daily_goal"
        return self.kind
