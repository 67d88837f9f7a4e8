from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Sequence

from timetabler.core.exceptions import NotAConflict, SlotNotFound
from timetabler.services.catalog import CatalogIndex
from timetabler.services.materializer import materialize_report
from timetabler.services.overlap import DEFAULT_ERROR_THRESHOLD_MINUTES, find_clashes
from timetabler.services.partitioner import partition
from timetabler.services.slots import Clash, EngineState, Slot, SubjectSelection

logger = logging.getLogger(__name__)

ResolutionActionType = Literal["place", "replace", "remove"]


@dataclass(frozen=True)
class ResolutionOption:
    action: ResolutionActionType
    slot_id: str
    description: str
    conflicting_slot_id: str | None = None


@dataclass
class ClashResolution:
    clash: Clash
    options: list[ResolutionOption] = field(default_factory=list)


@dataclass
class SubjectConflictStats:
    subject_id: str
    subject_code: str
    total: int = 0
    conflicting: int = 0
    non_conflicting: int = 0


class ResolutionController:
    """Owns one EngineState and the manual actions that mutate it.

    ``regenerate`` rebuilds the whole state from selections. ``place``,
    ``replace`` and ``remove`` act on unplaced slots only and recompute the
    clash list afterwards; a failed call leaves the state untouched. Not safe
    for concurrent use: one controller belongs to one session owner.
    """

    def __init__(
        self,
        catalog: CatalogIndex,
        *,
        error_threshold_minutes: int = DEFAULT_ERROR_THRESHOLD_MINUTES,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.catalog = catalog
        self.error_threshold_minutes = error_threshold_minutes
        self._id_factory = id_factory
        self._state = EngineState()
        self._order: dict[str, int] = {}
        self._selections: tuple[SubjectSelection, ...] = ()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def selections(self) -> tuple[SubjectSelection, ...]:
        return self._selections

    @property
    def displayed(self) -> list[Slot]:
        return list(self._state.displayed)

    @property
    def unplaced(self) -> list[Slot]:
        return list(self._state.unplaced)

    @property
    def dropped(self) -> list[Slot]:
        return list(self._state.dropped)

    @property
    def clashes(self) -> list[Clash]:
        return list(self._state.clashes)

    def regenerate(
        self,
        selections: Sequence[SubjectSelection],
        *,
        catalog: CatalogIndex | None = None,
    ) -> EngineState:
        if catalog is not None:
            self.catalog = catalog
        kwargs = {"id_factory": self._id_factory} if self._id_factory else {}
        report = materialize_report(selections, self.catalog, **kwargs)
        displayed, unplaced, clashes = partition(report.slots, error_threshold_minutes=self.error_threshold_minutes)

        self._selections = tuple(selections)
        self._order = {slot.id: index for index, slot in enumerate(report.slots)}
        self._commit(
            EngineState(
                displayed=displayed,
                unplaced=unplaced,
                clashes=clashes,
                dropped=[],
                rejected=list(report.rejected),
            )
        )
        logger.info(
            "Regenerated timetable: %d placed, %d unplaced, %d clashes, %d rejected offerings",
            len(displayed),
            len(unplaced),
            len(clashes),
            len(report.rejected),
        )
        return self._state

    def place(self, slot_id: str) -> EngineState:
        """Display an unplaced slot even if it still clashes."""
        slot = self._require_unplaced(slot_id)
        self._apply(
            displayed=[*self._state.displayed, slot],
            unplaced=[item for item in self._state.unplaced if item.id != slot_id],
            dropped=list(self._state.dropped),
        )
        logger.info("Placed slot %s (%s) despite conflicts", slot_id, slot.subject_code)
        return self._state

    def replace(self, slot_id: str, conflicting_slot_id: str) -> EngineState:
        """Drop ``conflicting_slot_id`` for good and display ``slot_id`` in its place."""
        slot = self._require_unplaced(slot_id)
        conflicting = self._find(conflicting_slot_id)
        if conflicting is None:
            logger.debug("replace(%s, %s) rejected: counterpart missing", slot_id, conflicting_slot_id)
            raise SlotNotFound(conflicting_slot_id, "displayed or unplaced")
        pair = frozenset((slot_id, conflicting_slot_id))
        if slot_id == conflicting_slot_id or not any(clash.slot_ids == pair for clash in self._state.clashes):
            logger.debug("replace(%s, %s) rejected: pair does not clash", slot_id, conflicting_slot_id)
            raise NotAConflict(slot_id, conflicting_slot_id)

        removed = {slot_id, conflicting_slot_id}
        self._apply(
            displayed=[item for item in self._state.displayed if item.id not in removed] + [slot],
            unplaced=[item for item in self._state.unplaced if item.id not in removed],
            dropped=[*self._state.dropped, conflicting],
        )
        logger.info(
            "Replaced slot %s (%s) with slot %s (%s)",
            conflicting_slot_id,
            conflicting.subject_code,
            slot_id,
            slot.subject_code,
        )
        return self._state

    def remove(self, slot_id: str) -> EngineState:
        """Drop an unplaced slot until the next regenerate. Selections are left alone."""
        slot = self._require_unplaced(slot_id)
        self._apply(
            displayed=list(self._state.displayed),
            unplaced=[item for item in self._state.unplaced if item.id != slot_id],
            dropped=[*self._state.dropped, slot],
        )
        logger.info("Removed unplaced slot %s (%s)", slot_id, slot.subject_code)
        return self._state

    def place_all(self) -> EngineState:
        if not self._state.unplaced:
            return self._state
        count = len(self._state.unplaced)
        self._apply(
            displayed=[*self._state.displayed, *self._state.unplaced],
            unplaced=[],
            dropped=list(self._state.dropped),
        )
        logger.info("Placed all %d unplaced slots", count)
        return self._state

    def remove_all(self) -> EngineState:
        if not self._state.unplaced:
            return self._state
        count = len(self._state.unplaced)
        self._apply(
            displayed=list(self._state.displayed),
            unplaced=[],
            dropped=[*self._state.dropped, *self._state.unplaced],
        )
        logger.info("Removed all %d unplaced slots", count)
        return self._state

    def non_conflicting_slots(self) -> list[Slot]:
        clashing = self._state.clashing_slot_ids()
        return [slot for slot in self._state.displayed if slot.id not in clashing]

    def conflicts_for(self, slot_id: str, *, displayed_only: bool = False) -> list[Slot]:
        """Slots that currently clash with ``slot_id``."""
        if self._find(slot_id) is None:
            raise SlotNotFound(slot_id, "displayed or unplaced")
        pool = self._state.displayed if displayed_only else self._state.slots
        counterpart_ids = {clash.other(slot_id) for clash in self._state.clashes if clash.involves(slot_id)}
        return [slot for slot in pool if slot.id in counterpart_ids]

    def suggest_resolutions(self) -> list[ClashResolution]:
        unplaced_ids = {slot.id for slot in self._state.unplaced}
        by_id = {slot.id: slot for slot in self._state.slots}
        resolutions: list[ClashResolution] = []
        for clash in self._state.clashes:
            resolution = ClashResolution(clash=clash)
            for slot_id in (clash.first_slot_id, clash.second_slot_id):
                if slot_id not in unplaced_ids:
                    continue
                slot = by_id[slot_id]
                counterpart = by_id[clash.other(slot_id)]
                label = f"{slot.subject_code} ({slot.kind.value})"
                resolution.options.append(
                    ResolutionOption(action="place", slot_id=slot_id, description=f"Place {label} anyway")
                )
                resolution.options.append(
                    ResolutionOption(
                        action="replace",
                        slot_id=slot_id,
                        conflicting_slot_id=counterpart.id,
                        description=f"Replace {counterpart.subject_code} ({counterpart.kind.value}) with {label}",
                    )
                )
                resolution.options.append(
                    ResolutionOption(action="remove", slot_id=slot_id, description=f"Remove {label}")
                )
            resolutions.append(resolution)
        return resolutions

    def subject_conflict_stats(self) -> dict[str, SubjectConflictStats]:
        conflicting_ids = self._state.clashing_slot_ids() | {slot.id for slot in self._state.unplaced}
        stats: dict[str, SubjectConflictStats] = {}
        for slot in self._ordered(self._state.slots):
            entry = stats.setdefault(
                slot.subject_code,
                SubjectConflictStats(subject_id=slot.subject_id, subject_code=slot.subject_code),
            )
            entry.total += 1
            if slot.id in conflicting_ids:
                entry.conflicting += 1
            else:
                entry.non_conflicting += 1
        return stats

    def _require_unplaced(self, slot_id: str) -> Slot:
        slot = next((item for item in self._state.unplaced if item.id == slot_id), None)
        if slot is None:
            logger.debug("Slot %s is not unplaced", slot_id)
            raise SlotNotFound(slot_id, "unplaced")
        return slot

    def _find(self, slot_id: str) -> Slot | None:
        return next((item for item in self._state.slots if item.id == slot_id), None)

    def _ordered(self, slots: Sequence[Slot]) -> list[Slot]:
        fallback = len(self._order)
        return sorted(slots, key=lambda slot: self._order.get(slot.id, fallback))

    def _apply(self, *, displayed: list[Slot], unplaced: list[Slot], dropped: list[Slot]) -> None:
        displayed = self._ordered(displayed)
        unplaced = self._ordered(unplaced)
        clashes = find_clashes(
            self._ordered([*displayed, *unplaced]),
            error_threshold_minutes=self.error_threshold_minutes,
        )
        self._commit(
            EngineState(
                displayed=displayed,
                unplaced=unplaced,
                clashes=clashes,
                dropped=dropped,
                rejected=list(self._state.rejected),
            )
        )

    def _commit(self, state: EngineState) -> None:
        state.revision = self._state.revision + 1
        self._state = state
