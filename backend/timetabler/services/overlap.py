from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from timetabler.services.slots import Clash, ClashKind, ClashSeverity, Slot
from timetabler.services.timeutils import describe_duration, minutes_to_time, parse_time_to_minutes

DEFAULT_ERROR_THRESHOLD_MINUTES = 30


def _as_minutes(value: int | str) -> int:
    if isinstance(value, int):
        return value
    return parse_time_to_minutes(value)


def overlaps(
    day_a: int,
    start_a: int | str,
    end_a: int | str,
    day_b: int,
    start_b: int | str,
    end_b: int | str,
) -> bool:
    """Half-open interval overlap on the same day. Touching intervals do not overlap."""
    if day_a != day_b:
        return False
    return _as_minutes(start_a) < _as_minutes(end_b) and _as_minutes(start_b) < _as_minutes(end_a)


def slots_overlap(a: Slot, b: Slot) -> bool:
    return overlaps(a.day_of_week, a.start_minute, a.end_minute, b.day_of_week, b.start_minute, b.end_minute)


def overlap_window(a: Slot, b: Slot) -> tuple[int, int] | None:
    if not slots_overlap(a, b):
        return None
    return max(a.start_minute, b.start_minute), min(a.end_minute, b.end_minute)


def overlap_minutes(a: Slot, b: Slot) -> int:
    window = overlap_window(a, b)
    if window is None:
        return 0
    return window[1] - window[0]


def same_venue(a: Slot, b: Slot) -> bool:
    # Blank venues are unknown, not shared.
    if not a.venue or not b.venue:
        return False
    return a.venue == b.venue


def clash_message(a: Slot, b: Slot, minutes: int, kind: ClashKind) -> str:
    prefix = f"{a.subject_code} ({a.kind.value}) and {b.subject_code} ({b.kind.value})"
    duration = describe_duration(minutes)
    if kind == ClashKind.venue:
        return f"{prefix} clash in venue {a.venue} for {duration}."
    return f"{prefix} overlap by {duration}."


def build_clash(
    a: Slot,
    b: Slot,
    *,
    error_threshold_minutes: int = DEFAULT_ERROR_THRESHOLD_MINUTES,
) -> Clash | None:
    if a.id == b.id or a.subject_id == b.subject_id:
        return None
    window = overlap_window(a, b)
    if window is None:
        return None
    start, end = window
    minutes = end - start
    kind = ClashKind.venue if same_venue(a, b) else ClashKind.time
    severity = ClashSeverity.error if minutes >= error_threshold_minutes else ClashSeverity.warning
    return Clash(
        first_slot_id=a.id,
        second_slot_id=b.id,
        first_subject_id=a.subject_id,
        second_subject_id=b.subject_id,
        first_subject_code=a.subject_code,
        second_subject_code=b.subject_code,
        kind=kind,
        day_of_week=a.day_of_week,
        start_time=minutes_to_time(start),
        end_time=minutes_to_time(end),
        overlap_minutes=minutes,
        severity=severity,
        message=clash_message(a, b, minutes, kind),
    )


def find_clashes(
    slots: Sequence[Slot],
    *,
    error_threshold_minutes: int = DEFAULT_ERROR_THRESHOLD_MINUTES,
) -> list[Clash]:
    """Every overlapping pair of slots from different subjects, one Clash per unordered pair.

    Slots are bucketed by day first; within a day pairs keep input order.
    """
    slots_by_day: dict[int, list[Slot]] = defaultdict(list)
    seen_ids: set[str] = set()
    for slot in slots:
        if slot.id in seen_ids:
            continue
        seen_ids.add(slot.id)
        slots_by_day[slot.day_of_week].append(slot)

    clashes: list[Clash] = []
    for day_slots in slots_by_day.values():
        n = len(day_slots)
        for i in range(n):
            for j in range(i + 1, n):
                clash = build_clash(day_slots[i], day_slots[j], error_threshold_minutes=error_threshold_minutes)
                if clash is not None:
                    clashes.append(clash)
    return clashes


def clashes_with(
    candidate: Slot,
    others: Iterable[Slot],
    *,
    error_threshold_minutes: int = DEFAULT_ERROR_THRESHOLD_MINUTES,
) -> list[Clash]:
    """Clashes the candidate would have if it were added next to ``others``."""
    result: list[Clash] = []
    for other in others:
        clash = build_clash(other, candidate, error_threshold_minutes=error_threshold_minutes)
        if clash is not None:
            result.append(clash)
    return result


def group_clashes_by_subject(clashes: Iterable[Clash]) -> dict[str, list[Clash]]:
    grouped: dict[str, list[Clash]] = defaultdict(list)
    for clash in clashes:
        grouped[clash.first_subject_id].append(clash)
        if clash.second_subject_id != clash.first_subject_id:
            grouped[clash.second_subject_id].append(clash)
    return dict(grouped)
