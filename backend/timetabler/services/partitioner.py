from __future__ import annotations

from typing import NamedTuple, Sequence

from timetabler.services.overlap import DEFAULT_ERROR_THRESHOLD_MINUTES, find_clashes
from timetabler.services.slots import Clash, Slot


class Partition(NamedTuple):
    displayed: list[Slot]
    unplaced: list[Slot]
    clashes: list[Clash]


def conflicting_slot_ids(clashes: Sequence[Clash]) -> set[str]:
    ids: set[str] = set()
    for clash in clashes:
        ids.update(clash.slot_ids)
    return ids


def partition(
    slots: Sequence[Slot],
    *,
    error_threshold_minutes: int = DEFAULT_ERROR_THRESHOLD_MINUTES,
) -> Partition:
    """Split slots into displayed and unplaced.

    Any slot touched by any clash is unplaced, even if dropping its
    counterpart would leave it clash-free. Both lists keep input order.
    """
    clashes = find_clashes(slots, error_threshold_minutes=error_threshold_minutes)
    excluded = conflicting_slot_ids(clashes)
    displayed = [slot for slot in slots if slot.id not in excluded]
    unplaced = [slot for slot in slots if slot.id in excluded]
    return Partition(displayed=displayed, unplaced=unplaced, clashes=clashes)
