"""
Reminder rule evaluation.

should_fire() is a pure, total function: it is called for every active reminder on
every tick and must never raise. Anything it cannot interpret (unknown kind,
malformed time) simply does not fire.

Matching is on the exact clock minute rather than on elapsed time, so a reminder
matches at most once within any clock minute. Interval kinds are anchored to the
reminder's hour and do not wrap backwards past midnight.
"""

import re
from datetime import datetime

from carepulse.domain.models import RecurrenceKind

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")

_WEEKDAY_PREFIX = "weekday:"

# datetime.weekday(): Monday == 0
_WEEKDAYS: tuple[RecurrenceKind, ...] = (
    RecurrenceKind.MONDAY,
    RecurrenceKind.TUESDAY,
    RecurrenceKind.WEDNESDAY,
    RecurrenceKind.THURSDAY,
    RecurrenceKind.FRIDAY,
    RecurrenceKind.SATURDAY,
    RecurrenceKind.SUNDAY,
)

_INTERVAL_HOURS: dict[RecurrenceKind, int] = {
    RecurrenceKind.EVERY_HOUR: 1,
    RecurrenceKind.EVERY_2_HOURS: 2,
    RecurrenceKind.EVERY_3_HOURS: 3,
}

_SAME_MINUTE_KINDS = frozenset({RecurrenceKind.ONCE, RecurrenceKind.DAILY, RecurrenceKind.WEEKLY})


def parse_time_of_day(value: str | None) -> tuple[int, int] | None:
    """Parse HH:MM or HH:MM:SS into (hour, minute). Seconds are discarded."""
    if not value:
        return None
    match = _TIME_RE.match(value)
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if not (0 <= hour < 24 and 0 <= minute < 60 and 0 <= second < 60):
        return None
    return hour, minute


def normalize_time_of_day(value: str) -> str:
    """
    Normalize user input to the stored HH:MM:SS form with seconds fixed at 0.

    Raises:
        ValueError: if the value is not a valid time of day.
    """
    parsed = parse_time_of_day(value)
    if parsed is None:
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute = parsed
    return f"{hour:02d}:{minute:02d}:00"


def resolve_recurrence(
    value: str | None, default_kind: RecurrenceKind | None = None
) -> RecurrenceKind | None:
    """
    Map a stored recurrence string to a kind.

    Empty values resolve to default_kind; unknown values resolve to None.
    Weekdays are accepted both bare ("monday") and prefixed ("weekday:monday").
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return default_kind
    if normalized.startswith(_WEEKDAY_PREFIX):
        normalized = normalized[len(_WEEKDAY_PREFIX) :].strip()
        if normalized not in {day.value for day in _WEEKDAYS}:
            return None
    try:
        return RecurrenceKind(normalized)
    except ValueError:
        return None


def weekday_kind(now: datetime) -> RecurrenceKind:
    return _WEEKDAYS[now.weekday()]


def matches(kind: RecurrenceKind, hour: int, minute: int, now: datetime) -> bool:
    """Firing predicate for an already resolved kind and anchor."""
    if kind in _SAME_MINUTE_KINDS:
        return now.hour == hour and now.minute == minute

    if kind in _INTERVAL_HOURS:
        hours_since_anchor = now.hour - hour
        return (
            now.minute == minute
            and hours_since_anchor >= 0
            and hours_since_anchor % _INTERVAL_HOURS[kind] == 0
        )

    # Remaining kinds are weekdays
    return now.hour == hour and now.minute == minute and weekday_kind(now) == kind


def should_fire(
    recurrence: str | None,
    time_of_day: str | None,
    now: datetime,
    *,
    default_kind: RecurrenceKind | None = None,
) -> bool:
    """
    Decide whether a reminder fires at now.

    Args:
        recurrence: Stored recurrence string, e.g. "daily", "2hrs", "monday".
        time_of_day: Stored anchor, HH:MM or HH:MM:SS in local time.
        now: Current local time.
        default_kind: Kind used when recurrence is empty.

    Returns:
        True if the reminder should fire during now's clock minute.
    """
    kind = resolve_recurrence(recurrence, default_kind)
    if kind is None:
        return False

    anchor = parse_time_of_day(time_of_day)
    if anchor is None:
        return False

    return matches(kind, anchor[0], anchor[1], now)
