"""Onboarding reply extraction.

Reads a free-form onboarding answer ("My name is Sam. Goals: ...; Tone: ...")
and pulls out a name, a list of goals and a motivational tone, without calling
the language model. Prioritizes accuracy over coverage: a field that cannot be
read reliably is left out and a warning is recorded, and the confidence level
decides whether the result may be saved at all.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, List, Optional, Tuple

from coach.core.config import settings
from coach.core.logging import logger
from coach.services.patterns import (
    GOAL_INTENT_RE,
    GOAL_PREFIX_RE,
    GOAL_SPLIT_RE,
    GOALS_FIELD_RE,
    I_AM_RE,
    MY_NAME_IS_RE,
    NAME_CONTEXT_RE,
    SENTENCE_SPLIT_RE,
    TONE_CONTEXT_RE,
    TONE_FIELD_RE,
    TONE_KEYWORDS,
    TRAILING_PUNCT,
)

MIN_GOAL_LENGTH = 3
MAX_GOAL_LENGTH = 99
MAX_NAME_LENGTH = 49


@total_ordering
class Confidence(Enum):
    """How sure we are about an extraction. Ordered LOW < MEDIUM < HIGH."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    @property
    def persistable(self) -> bool:
        return self is not Confidence.LOW

    def __lt__(self, other: "Confidence") -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank < other.rank


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


@dataclass(frozen=True)
class Preferences:
    """Coaching preferences picked up during onboarding."""
    tone: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {"tone": self.tone} if self.tone else {}


@dataclass(frozen=True)
class ExtractionResult:
    """Structured profile data read from one onboarding reply.

    ``summary`` is None when no explicit name was found; that is different
    from an empty string, which is never produced.
    """
    summary: Optional[str]
    goals: Tuple[str, ...] = ()
    preferences: Preferences = field(default_factory=Preferences)
    confidence: Confidence = Confidence.LOW
    warnings: Tuple[str, ...] = ()

    @property
    def has_name(self) -> bool:
        return self.summary is not None

    @property
    def has_goals(self) -> bool:
        return len(self.goals) > 0

    @property
    def has_tone(self) -> bool:
        return self.preferences.tone is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "goals": list(self.goals),
            "preferences": self.preferences.to_dict(),
            "confidence": self.confidence.value,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class ProfileFragment:
    """The part of an extraction that is written to the profile store."""
    extracted_at: datetime
    extraction_confidence: Confidence
    summary: Optional[str] = None
    goals: Optional[Dict[str, List[str]]] = None  # keyed by year, e.g. {"2026": [...]}
    preferences: Optional[Dict[str, str]] = None
    extraction_warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.summary is not None:
            data["summary"] = self.summary
        if self.goals:
            data["goals"] = self.goals
        if self.preferences:
            data["preferences"] = self.preferences
        data["extractedAt"] = self.extracted_at.isoformat()
        data["extractionConfidence"] = self.extraction_confidence.value
        if self.extraction_warnings:
            data["extractionWarnings"] = list(self.extraction_warnings)
        return data


def score_confidence(has_name: bool, has_goals: bool, has_tone: bool) -> Confidence:
    """HIGH needs all three fields; MEDIUM needs goals plus a name or a tone."""
    if has_name and has_goals and has_tone:
        return Confidence.HIGH
    if (has_name and has_goals) or (has_goals and has_tone):
        return Confidence.MEDIUM
    return Confidence.LOW


class OnboardingExtractor:
    """Extracts name, goals and tone from an onboarding reply."""

    def __init__(self, min_length: Optional[int] = None, max_goals: Optional[int] = None):
        self.min_length = min_length if min_length is not None else settings.min_onboarding_length
        self.max_goals = max_goals if max_goals is not None else settings.max_goals

    def extract(self, text: str) -> ExtractionResult:
        """
        Parse an onboarding reply.

        Args:
            text: The user's message

        Returns:
            ExtractionResult; text shorter than the minimum length yields a
            LOW result with a single warning and no fields.
        """
        text = (text or "").strip()
        if len(text) < self.min_length:
            return ExtractionResult(
                summary=None,
                confidence=Confidence.LOW,
                warnings=("Text too short to parse reliably",),
            )

        warnings: List[str] = []

        name = self._extract_name(text)
        if name is None:
            warnings.append("Could not extract name/summary explicitly")

        goals = self._extract_goals(text)
        if not goals:
            warnings.append("No goals detected - user may not have provided them")
        elif len(goals) > self.max_goals:
            warnings.append(f"Extracted {len(goals)} goals - truncating to {self.max_goals}")
            goals = goals[:self.max_goals]

        tone = self._extract_tone(text)
        if tone is None:
            warnings.append("No tone/motivation preference detected")

        confidence = score_confidence(name is not None, bool(goals), tone is not None)
        result = ExtractionResult(
            summary=name,
            goals=tuple(goals),
            preferences=Preferences(tone=tone),
            confidence=confidence,
            warnings=tuple(warnings),
        )

        logger.debug(
            f"[Onboarding] Parsed: confidence={confidence.value}, summary={name}, "
            f"goals={len(goals)}, tone={tone or 'not set'}, warnings={len(warnings)}"
        )
        return result

    def _extract_name(self, text: str) -> Optional[str]:
        # Priority 1: "My name is X"
        match = MY_NAME_IS_RE.search(text)
        # Priority 2: "I am X" / "I'm X", only alongside goal or tone markers
        if match is None and NAME_CONTEXT_RE.search(text):
            match = I_AM_RE.search(text)
        if match is None:
            return None

        name = match.group(1).strip()
        if 1 < len(name) <= MAX_NAME_LENGTH:
            return name
        return None

    def _extract_goals(self, text: str) -> List[str]:
        candidates: List[str] = []

        # Priority 1: explicit "Goals:" field, never split on "and"
        field_match = GOALS_FIELD_RE.search(text)
        if field_match:
            candidates = [self._clean_goal(part) for part in GOAL_SPLIT_RE.split(field_match.group(1))]
            candidates = [goal for goal in candidates if self._valid_goal(goal)]

        # Priority 2: "I want to ..." style sentences
        if not candidates:
            for sentence in SENTENCE_SPLIT_RE.split(text):
                sentence = sentence.strip()
                intent = GOAL_INTENT_RE.match(sentence)
                if not intent:
                    continue
                goal = self._clean_goal(sentence[intent.end():])
                if self._valid_goal(goal):
                    candidates.append(goal)

        return _dedupe(candidates)

    @staticmethod
    def _clean_goal(raw: str) -> str:
        goal = GOAL_PREFIX_RE.sub("", raw.strip())
        return goal.strip().rstrip(TRAILING_PUNCT)

    @staticmethod
    def _valid_goal(goal: str) -> bool:
        return MIN_GOAL_LENGTH <= len(goal) <= MAX_GOAL_LENGTH

    @staticmethod
    def _extract_tone(text: str) -> Optional[str]:
        # Priority 1: explicit "Tone:" field
        match = TONE_FIELD_RE.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip().lower()

        # Priority 2: keywords, only inside a tone/preference/motivation context
        for window in TONE_CONTEXT_RE.finditer(text):
            window_text = window.group(0).lower()
            for keyword in TONE_KEYWORDS:
                if keyword in window_text:
                    return keyword
        return None


def _dedupe(goals: List[str]) -> List[str]:
    """Case-insensitive dedup, first occurrence wins, order preserved."""
    seen = set()
    unique = []
    for goal in goals:
        key = goal.casefold()
        if key not in seen:
            seen.add(key)
            unique.append(goal)
    return unique


def build_profile_fragment(result: ExtractionResult, now: Optional[datetime] = None) -> ProfileFragment:
    """
    Build the store payload for a persistable extraction.

    Only fields that were actually extracted are included. Goals are filed
    under the current year.

    Raises:
        ValueError: if the result has LOW confidence
    """
    if not result.confidence.persistable:
        raise ValueError("Low-confidence extractions are never persisted")

    if now is None:
        now = datetime.now(settings.user_timezone)

    return ProfileFragment(
        extracted_at=now,
        extraction_confidence=result.confidence,
        summary=result.summary,
        goals={str(now.year): list(result.goals)} if result.goals else None,
        preferences=result.preferences.to_dict() or None,
        extraction_warnings=result.warnings,
    )


# Singleton instance
onboarding_extractor = OnboardingExtractor()
