from __future__ import annotations

import re

from timetabler.core.exceptions import InvalidTimeFormat

DAYS_OF_WEEK = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

TIME_PATTERN = re.compile(r"^([0-9]{1,2}):([0-9]{2})(?::([0-9]{2}))?$")


def parse_time_to_minutes(value: str) -> int:
    """Convert ``H:MM``, ``HH:MM`` or ``HH:MM:SS`` into minutes since midnight.

    Seconds are validated and then dropped. Raises ``InvalidTimeFormat`` for
    anything that is not a 24-hour clock reading.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    match = TIME_PATTERN.match(value.strip())
    if match is None:
        raise InvalidTimeFormat(value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if not 0 <= hours <= 23:
        raise InvalidTimeFormat(value, "Hour must be between 0 and 23")
    if not 0 <= minutes <= 59 or not 0 <= seconds <= 59:
        raise InvalidTimeFormat(value, "Minute must be between 0 and 59")
    return hours * 60 + minutes


def minutes_to_time(value: int) -> str:
    hours = value // 60
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


def normalize_time(value: str) -> str:
    return minutes_to_time(parse_time_to_minutes(value))


def parse_interval(start: str, end: str) -> tuple[int, int]:
    start_minutes = parse_time_to_minutes(start)
    end_minutes = parse_time_to_minutes(end)
    if end_minutes <= start_minutes:
        raise InvalidTimeFormat(f"{start}-{end}", "Start time must precede end time")
    return start_minutes, end_minutes


def day_name(day_of_week: int, *, short: bool = False) -> str:
    name = DAYS_OF_WEEK[day_of_week]
    return name[:3] if short else name


def describe_duration(minutes: int) -> str:
    hours, remainder = divmod(minutes, 60)
    parts: list[str] = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours > 1 else ''}")
    if remainder:
        parts.append(f"{remainder} minute{'s' if remainder > 1 else ''}")
    return " and ".join(parts) or "0 minutes"
