"""Pattern library shared by extraction, gating, override rules and tier selection.

All regular expressions and keyword tables used to read user text live here so
every component agrees on what a "goal marker" or a "weekday" is.
"""
import re
from typing import Dict, List, Tuple


# Weekdays, Sunday=0 (the numbering calendar events use)
WEEKDAYS: Dict[str, int] = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}
WEEKDAY_NAMES: List[str] = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

_WEEKDAY_ALT = "|".join(WEEKDAYS)
WEEKDAY_RE = re.compile(rf"\b({_WEEKDAY_ALT})s?\b", re.IGNORECASE)
NEXT_WEEKDAY_RE = re.compile(rf"\bnext\s+({_WEEKDAY_ALT})\b", re.IGNORECASE)

# Time of day, in priority order
TIME_OF_DAY: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bmornings?\b", re.IGNORECASE), "09:00"),
    (re.compile(r"\bnoon\b", re.IGNORECASE), "12:00"),
    (re.compile(r"\bafternoons?\b", re.IGNORECASE), "14:00"),
    (re.compile(r"\bevenings?\b", re.IGNORECASE), "18:00"),
    (re.compile(r"\b(?:nights?|tonight)\b", re.IGNORECASE), "20:00"),
]
DEFAULT_TIME = "10:00"

# 3pm, 3:30 pm, 12am, 15:30
CLOCK_TIME_RE = re.compile(
    r"\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.?m\.?(?![a-z])|\b(\d{1,2}):(\d{2})\b",
    re.IGNORECASE,
)

TOMORROW_RE = re.compile(r"\btomorrow\b", re.IGNORECASE)
TODAY_RE = re.compile(r"\btoday\b", re.IGNORECASE)

# Onboarding gate markers
NAME_MARKER_RE = re.compile(r"my name is|\bi am\b|\bi'm\b", re.IGNORECASE)
GOAL_MARKER_RE = re.compile(
    r"goals?:|\bi want to\b|\bi'd like to\b|\bi would like to\b|\bi'm aiming\b|\baiming to\b",
    re.IGNORECASE,
)
TONE_MARKER_RE = re.compile(r"tone:|encourag|support|energiz|\bfirm\b|strict|gentle|motiv|prefer", re.IGNORECASE)

# Name extraction. Marker is case-insensitive, the name itself must be capitalised.
_NAME = r"([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)?)"
MY_NAME_IS_RE = re.compile(rf"(?i:\bmy name is)\s+{_NAME}")
I_AM_RE = re.compile(rf"(?:^|[.!?]\s+)(?i:i am|i'm)\s+{_NAME}")
# Required elsewhere in the text before "I am X" counts as a name
NAME_CONTEXT_RE = re.compile(r"goals?:|tone:|\bi want to\b|\bi'd like to\b|prefer", re.IGNORECASE)

# Goals
GOALS_FIELD_RE = re.compile(
    r"\bgoals?:\s*(.*?)(?=\btone:|\bpreferences?:|[.!?]\s+[A-Z]|$)",
    re.IGNORECASE | re.DOTALL,
)
GOAL_SPLIT_RE = re.compile(r"\s*(?:;|,|\n\s*[-*\u2022]?)\s*")
GOAL_PREFIX_RE = re.compile(r"^(?:[-*\u2022]\s*)?(?:(?:and|or)\s+)?", re.IGNORECASE)
GOAL_INTENT_RE = re.compile(
    r"^.*?\b(?:i want to|i'd like to|i would like to|i'm aiming to|goal is to)\s+",
    re.IGNORECASE,
)
SENTENCE_SPLIT_RE = re.compile(r"[.!?\n]+")
TRAILING_PUNCT = " \t.!?;:"

# Tone
TONE_FIELD_RE = re.compile(r"\btone:\s*([a-zA-Z\- ]+?)\s*(?:[,.!?;\n]|$)", re.IGNORECASE)
TONE_CONTEXT_RE = re.compile(r"(?:tone|prefer|motivat)[^.!?\n]*", re.IGNORECASE)
TONE_KEYWORDS: List[str] = [
    "encouraging", "supportive", "energizing", "energetic",
    "firm", "strict", "gentle", "motivating", "motivational",
    "uplifting", "positive", "realistic", "direct", "compassionate",
]

# Model tier selection
WHAT_RE = re.compile(r"\bwhat\b", re.IGNORECASE)
CHEAP_TASK_RE = re.compile(
    r"\b(?:list(?:s|ed|ing)?|defin(?:e|es|ed|ing)|summari[sz](?:e|es|ed|ing))\b",
    re.IGNORECASE,
)
CHEAP_WHAT_MAX_LENGTH = 100


def weekday_number(name: str) -> int:
    """Map a weekday name (any case) to 0..6 with Sunday=0."""
    return WEEKDAYS[name.lower()]


def gate_markers(text: str) -> Tuple[bool, bool, bool]:
    """Return (has_name_marker, has_goal_marker, has_tone_marker)."""
    return (
        bool(NAME_MARKER_RE.search(text)),
        bool(GOAL_MARKER_RE.search(text)),
        bool(TONE_MARKER_RE.search(text)),
    )
