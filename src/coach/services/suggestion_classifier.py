"""Suggestion classifier - turns recent chat into one goal or calendar event.

The language model proposes a suggestion as JSON. Its proposal is advisory:
models name the activity reliably but miss recurrence often, so a table of
override rules re-reads the user's own words and, when a recurring schedule
is stated, forces a weekly event with days and time taken from the text.
"""
import json
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from pydantic import ValidationError as SchemaValidationError

from coach.core.config import settings
from coach.core.errors import MalformedModelOutputError
from coach.core.logging import logger
from coach.models.schemas import SuggestionPayload
from coach.services.llm import LanguageModel, get_llm_service
from coach.services.patterns import (
    GOAL_INTENT_RE,
    SENTENCE_SPLIT_RE,
    TRAILING_PUNCT,
    WEEKDAY_NAMES,
    WEEKDAYS,
)
from coach.services.stores import ChatTurn, Profile, TurnRole
from coach.services.time_normalizer import (
    extract_date,
    extract_time,
    has_date_reference,
    mentioned_weekday_set,
)


class SuggestionKind(Enum):
    DAILY_GOAL = "daily_goal"
    LONGTERM_GOAL = "longterm_goal"
    EVENT = "event"


class Recurrence(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class Suggestion:
    """A goal or calendar event offered to the user for one-click acceptance."""
    kind: SuggestionKind
    text: str
    reasoning: str = ""
    event_date: Optional[date] = None
    event_time: Optional[str] = None
    recurring: Optional[Recurrence] = None
    recurring_days: Optional[FrozenSet[int]] = None

    @property
    def is_event(self) -> bool:
        return self.kind is SuggestionKind.EVENT

    @property
    def display_text(self) -> str:
        """Question-style text shown on the suggestion card."""
        if self.is_event and self.recurring:
            return f"{self.text} ({self.recurring.value})?"
        return f"{self.text}?"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.kind.value,
            "text": self.text,
            "reasoning": self.reasoning,
        }
        if self.event_date is not None:
            data["eventDate"] = self.event_date.isoformat()
        if self.event_time is not None:
            data["eventTime"] = self.event_time
        if self.recurring is not None:
            data["recurring"] = self.recurring.value
        if self.recurring_days:
            data["recurringDays"] = sorted(self.recurring_days)
        return data


@dataclass(frozen=True)
class OverrideRule:
    """A text pattern that means "this is a recurring event"."""
    name: str
    pattern: re.Pattern
    recurrence: Recurrence

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


_DAY = "(?:" + "|".join(WEEKDAYS) + ")s?"

# Evaluated in order; the first match decides. New rules are new rows.
OVERRIDE_RULES: List[OverrideRule] = [
    OverrideRule("every_weekday", re.compile(rf"\bevery\s+{_DAY}\b", re.IGNORECASE), Recurrence.WEEKLY),
    OverrideRule("on_weekday", re.compile(rf"\bon\s+{_DAY}\b", re.IGNORECASE), Recurrence.WEEKLY),
    OverrideRule(
        "weekday_time_of_day",
        re.compile(rf"\b{_DAY}\s+(?:morning|afternoon|evening)s?\b", re.IGNORECASE),
        Recurrence.WEEKLY,
    ),
    OverrideRule("every_other", re.compile(r"\bevery\s+other\b", re.IGNORECASE), Recurrence.WEEKLY),
    OverrideRule(
        "times_a_week",
        re.compile(r"\b\d+\s*(?:x|times)\s+(?:a|per)\s+week\b", re.IGNORECASE),
        Recurrence.WEEKLY,
    ),
    OverrideRule("twice_a_week", re.compile(r"\btwice\s+(?:a|per)\s+week\b", re.IGNORECASE), Recurrence.WEEKLY),
    OverrideRule("biweekly", re.compile(r"\bbi-?weekly\b", re.IGNORECASE), Recurrence.WEEKLY),
    OverrideRule("weekly", re.compile(r"\bweekly\b", re.IGNORECASE), Recurrence.WEEKLY),
]


def find_override(text: str, rules: Sequence[OverrideRule] = OVERRIDE_RULES) -> Optional[OverrideRule]:
    """Return the first override rule the text matches, if any."""
    for rule in rules:
        if rule.matches(text):
            return rule
    return None


SUGGESTION_PROMPT = """Today is {today}.

Based on the user's MOST RECENT MESSAGE and the conversation context, generate ONE suggestion that directly addresses what they just said.

- Focus on the most recent message for the GOAL/ACTIVITY
- Use the broader conversation to make the suggestion more specific with any advice the assistant gave

User's Most Recent Message:
"{message}"

Broader Conversation Context:
{conversation}

User Profile Context:
{profile}

Respond with a single JSON object:
{{
  "type": "daily_goal" | "longterm_goal" | "event",
  "text": "ONLY the action phrase - no day names, no time periods. e.g. 'meditate for 15 minutes'",
  "reasoning": "brief explanation of why this addresses what the user said",
  "eventDate": "YYYY-MM-DD (events only)",
  "eventTime": "HH:MM (events only)",
  "recurring": "daily|weekly|biweekly|monthly|yearly (repeating events only)",
  "recurringDays": [0-6 list for weekly events, Sunday=0]
}}

If the conversation does not warrant a suggestion, return {{"type": null}}.

Create a suggestion when the user states a goal, a habit they want to build, a one-off activity, days/times for a recurring activity, or a plan. Return null for pure information questions, small talk, or feedback.

Type rules:
- Specific days, times of day or frequencies ("every Saturday morning", "on Mondays", "3x a week") -> event
- Daily habit language with no day or time ("I should exercise daily") -> daily_goal
- Aspirations ("I want to run a marathon", "I'm planning to learn Python") -> longterm_goal

Return ONLY valid JSON, no other text."""

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def parse_suggestion_payload(response: str) -> SuggestionPayload:
    """
    Pull the JSON object out of a model reply and validate it.

    Raises:
        MalformedModelOutputError: no JSON object, invalid JSON, or wrong shape
    """
    match = _JSON_OBJECT_RE.search(response or "")
    if not match:
        raise MalformedModelOutputError("No JSON object found in suggestion response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise MalformedModelOutputError(f"Invalid suggestion JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedModelOutputError("Suggestion JSON is not an object")
    try:
        return SuggestionPayload.model_validate(data)
    except SchemaValidationError as e:
        raise MalformedModelOutputError(f"Suggestion JSON has the wrong shape: {e}") from e


def fallback_text(user_text: str) -> str:
    """Activity text taken from the user's own words when the model gave none."""
    sentences = [s.strip() for s in SENTENCE_SPLIT_RE.split(user_text) if s.strip()]
    for sentence in sentences:
        intent = GOAL_INTENT_RE.match(sentence)
        if intent:
            return sentence[intent.end():].strip().rstrip(TRAILING_PUNCT)
    return sentences[0].rstrip(TRAILING_PUNCT) if sentences else ""


def override_reasoning(days: FrozenSet[int]) -> str:
    if days:
        names = " and ".join(WEEKDAY_NAMES[day] for day in sorted(days))
        return f"You mentioned doing this every {names} - creating as a recurring event."
    return "You mentioned a recurring schedule - creating as a recurring event."


def _event_date(payload: SuggestionPayload, user_text: str, today: date) -> date:
    if has_date_reference(user_text):
        return extract_date(user_text, today)
    if payload.event_date is not None:
        return payload.event_date
    return today


def resolve_suggestion(
    payload: SuggestionPayload,
    user_text: str,
    now: Optional[datetime] = None,
) -> Optional[Suggestion]:
    """
    Combine the model's proposal with the override rules.

    Args:
        payload: Validated model proposal
        user_text: The user's most recent message
        now: Reference time for event dates

    Returns:
        The final Suggestion, or None when neither the model nor the rules
        produce one
    """
    if now is None:
        now = datetime.now(settings.user_timezone)
    today = now.date()

    rule = find_override(user_text)
    if rule is not None:
        days = mentioned_weekday_set(user_text)
        text = payload.text or fallback_text(user_text)
        if not text:
            return None
        logger.info(
            f"[Suggestion] Override '{rule.name}' forced event "
            f"(model said {payload.resolved_kind}), days={sorted(days)}"
        )
        return Suggestion(
            kind=SuggestionKind.EVENT,
            text=text,
            reasoning=override_reasoning(days),
            event_date=_event_date(payload, user_text, today),
            event_time=extract_time(user_text),
            recurring=rule.recurrence,
            recurring_days=days or None,
        )

    kind_value = payload.resolved_kind
    if kind_value is None:
        logger.info("[Suggestion] No actionable suggestion")
        return None

    kind = SuggestionKind(kind_value)
    text = payload.text or fallback_text(user_text)
    if not text:
        return None

    if kind is not SuggestionKind.EVENT:
        return Suggestion(kind=kind, text=text, reasoning=payload.reasoning or "")

    return Suggestion(
        kind=kind,
        text=text,
        reasoning=payload.reasoning or "",
        event_date=_event_date(payload, user_text, today),
        event_time=payload.event_time or extract_time(user_text),
        recurring=Recurrence(payload.recurring) if payload.recurring else None,
        recurring_days=frozenset(payload.recurring_days) if payload.recurring_days else None,
    )


class SuggestionClassifier:
    """Asks the model for a suggestion and applies the override rules."""

    def __init__(self, llm: Optional[LanguageModel] = None):
        self._llm = llm

    @property
    def llm(self) -> LanguageModel:
        """Lazy load LLM service."""
        if self._llm is None:
            self._llm = get_llm_service()
        return self._llm

    def build_prompt(
        self,
        user_text: str,
        recent_turns: Sequence[ChatTurn],
        profile: Optional[Profile],
        now: datetime,
    ) -> str:
        window = settings.conversation.suggestion_context_window
        conversation = "\n".join(
            f"{'User' if turn.role is TurnRole.USER else 'Assistant'}: {turn.text}"
            for turn in list(recent_turns)[-window:]
        )
        profile_context = profile.to_context() if profile else ""
        return SUGGESTION_PROMPT.format(
            today=now.strftime("%A, %Y-%m-%d"),
            message=user_text,
            conversation=conversation or "(none)",
            profile=profile_context or "No profile info available yet",
        )

    def classify(
        self,
        recent_turns: Sequence[ChatTurn],
        profile: Optional[Profile] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Suggestion]:
        """
        Produce a suggestion from recent turns.

        Malformed model output yields None. ModelUnavailableError propagates.
        """
        user_turns = [turn for turn in recent_turns if turn.role is TurnRole.USER]
        if not user_turns or not user_turns[-1].text.strip():
            return None
        user_text = user_turns[-1].text

        if now is None:
            now = datetime.now(settings.user_timezone)

        prompt = self.build_prompt(user_text, recent_turns, profile, now)
        response = self.llm.generate_json(prompt)

        try:
            payload = parse_suggestion_payload(response)
        except MalformedModelOutputError as e:
            logger.warning(f"[Suggestion] {e}; response was: {(response or '')[:200]}")
            return None

        suggestion = resolve_suggestion(payload, user_text, now)
        if suggestion:
            logger.info(f"[Suggestion] {suggestion.kind.value} - {suggestion.text}")
        return suggestion


# Singleton instance
suggestion_classifier = SuggestionClassifier()
