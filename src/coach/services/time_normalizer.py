"""Natural-language date and time normalization.

Turns phrases like "tomorrow morning" or "next Monday at 3pm" into a concrete
calendar date and a 24-hour HH:MM time. Everything here is pure; callers pass
``now`` to pin the reference date.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, FrozenSet, List, Optional

from coach.core.config import settings
from coach.services.patterns import (
    CLOCK_TIME_RE,
    DEFAULT_TIME,
    NEXT_WEEKDAY_RE,
    TIME_OF_DAY,
    TODAY_RE,
    TOMORROW_RE,
    WEEKDAY_RE,
    weekday_number,
)


@dataclass(frozen=True)
class ScheduleSlot:
    """A concrete calendar date and time of day."""
    date: date
    time: str  # HH:MM, 24-hour

    def to_dict(self) -> Dict[str, str]:
        return {"date": self.date.isoformat(), "time": self.time}


def _day_of_week(d: date) -> int:
    """Day of week with Sunday=0."""
    return (d.weekday() + 1) % 7


def days_until_weekday(current: date, target_dow: int) -> int:
    """Days from ``current`` to the next ``target_dow`` strictly after it."""
    days_ahead = (target_dow - _day_of_week(current) + 7) % 7
    if days_ahead <= 0:
        days_ahead += 7
    return days_ahead


def extract_clock_time(text: str) -> Optional[str]:
    """Find an explicit clock time such as 3pm, 7:30 am or 15:45."""
    for match in CLOCK_TIME_RE.finditer(text):
        if match.group(3):
            hours = int(match.group(1))
            minutes = int(match.group(2) or 0)
            if not 1 <= hours <= 12 or minutes > 59:
                continue
            period = match.group(3).lower()
            if period == 'p' and hours != 12:
                hours += 12
            elif period == 'a' and hours == 12:
                hours = 0
        else:
            hours = int(match.group(4))
            minutes = int(match.group(5))
            if hours > 23 or minutes > 59:
                continue
        return f"{hours:02d}:{minutes:02d}"
    return None


def extract_time_of_day(text: str) -> Optional[str]:
    """Map the first time-of-day keyword (morning, noon, ...) to a clock time."""
    for pattern, clock in TIME_OF_DAY:
        if pattern.search(text):
            return clock
    return None


def extract_time(text: str, default: str = DEFAULT_TIME) -> str:
    """Explicit clock time wins over a time-of-day keyword; otherwise ``default``."""
    return extract_clock_time(text) or extract_time_of_day(text) or default


def mentioned_weekdays(text: str) -> List[int]:
    """Every weekday named in ``text`` (Sunday=0), in order of first mention."""
    days: List[int] = []
    for match in WEEKDAY_RE.finditer(text):
        dow = weekday_number(match.group(1))
        if dow not in days:
            days.append(dow)
    return days


def mentioned_weekday_set(text: str) -> FrozenSet[int]:
    return frozenset(mentioned_weekdays(text))


def has_date_reference(text: str) -> bool:
    """True when the text names a day we can resolve (tomorrow, today, a weekday)."""
    return bool(TOMORROW_RE.search(text) or TODAY_RE.search(text) or WEEKDAY_RE.search(text))


def extract_date(text: str, today: date) -> date:
    """Resolve tomorrow / today / (next) <weekday>; no marker means ``today``."""
    if TOMORROW_RE.search(text):
        return today + timedelta(days=1)
    if TODAY_RE.search(text):
        return today

    match = NEXT_WEEKDAY_RE.search(text) or WEEKDAY_RE.search(text)
    if match:
        target = weekday_number(match.group(1))
        return today + timedelta(days=days_until_weekday(today, target))

    return today


def normalize(text: str, now: Optional[datetime] = None) -> ScheduleSlot:
    """
    Normalize a natural-language time expression.

    Args:
        text: Free text, e.g. "next monday at 3pm" or "tomorrow evening"
        now: Reference time (defaults to now in the user's timezone)

    Returns:
        ScheduleSlot with an ISO date and HH:MM time (10:00 when no time given)
    """
    if now is None:
        now = datetime.now(settings.user_timezone)

    return ScheduleSlot(
        date=extract_date(text, now.date()),
        time=extract_time(text),
    )
