from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Sequence

from timetabler.core.exceptions import InvalidTimeFormat
from timetabler.models.subject import ClassType
from timetabler.services.catalog import CatalogIndex
from timetabler.services.slots import ClassOffering, RejectedOffering, Slot, SubjectSelection
from timetabler.services.timeutils import minutes_to_time, parse_interval

logger = logging.getLogger(__name__)

CLASS_TYPE_COLORS: dict[ClassType, str] = {
    ClassType.lecture: "#8B5CF6",
    ClassType.tutorial: "#A855F7",
    ClassType.lab: "#9333EA",
    ClassType.practical: "#7C3AED",
}
FALLBACK_COLOR = "#6D28D9"


@dataclass
class MaterializeReport:
    slots: list[Slot] = field(default_factory=list)
    rejected: list[RejectedOffering] = field(default_factory=list)
    missing_subject_ids: list[str] = field(default_factory=list)


def _new_slot_id() -> str:
    return str(uuid.uuid4())


def to_slot(
    offering: ClassOffering,
    *,
    slot_id: str,
    color: str | None = None,
    from_tutorial: bool = False,
) -> Slot:
    start_minute, end_minute = parse_interval(offering.start_time, offering.end_time)
    if not 0 <= offering.day_of_week <= 6:
        raise InvalidTimeFormat(offering.day_of_week, "Day of week must be between 0 and 6")
    return Slot(
        id=slot_id,
        offering_id=offering.id,
        subject_id=offering.subject_id,
        subject_code=offering.subject_code,
        subject_name=offering.subject_name,
        kind=offering.kind,
        day_of_week=offering.day_of_week,
        start_time=minutes_to_time(start_minute),
        end_time=minutes_to_time(end_minute),
        start_minute=start_minute,
        end_minute=end_minute,
        venue=offering.venue,
        color=color or CLASS_TYPE_COLORS.get(offering.kind, FALLBACK_COLOR),
        from_tutorial=from_tutorial,
        instructor=offering.instructor,
        capacity=offering.capacity,
        group_name=offering.group_name,
    )


def _chosen_offerings(selection: SubjectSelection, offerings: Sequence[ClassOffering]) -> list[ClassOffering]:
    chosen = [offering for offering in offerings if not offering.is_tutorial]
    if selection.chosen_group_id is None:
        return chosen
    group = next(
        (offering for offering in offerings if offering.is_tutorial and offering.id == selection.chosen_group_id),
        None,
    )
    if group is None:
        logger.warning(
            "Chosen group %s not found for subject %s; ignoring it",
            selection.chosen_group_id,
            selection.subject_id,
        )
        return chosen
    chosen.append(group)
    return chosen


def materialize_report(
    selections: Sequence[SubjectSelection],
    catalog: CatalogIndex,
    *,
    id_factory: Callable[[], str] = _new_slot_id,
) -> MaterializeReport:
    """Expand selections into concrete slots, keeping selection order.

    Subjects the catalog does not know are skipped. Offerings with unusable
    times are skipped and reported in ``rejected`` rather than aborting the run.
    """
    report = MaterializeReport()
    for selection in selections:
        offerings = catalog.lookup(selection.subject_id)
        if not offerings:
            logger.info("Subject %s not found in catalog; skipping", selection.subject_id)
            report.missing_subject_ids.append(selection.subject_id)
            continue

        for offering in _chosen_offerings(selection, offerings):
            try:
                slot = to_slot(
                    offering,
                    slot_id=id_factory(),
                    color=selection.color,
                    from_tutorial=offering.is_tutorial,
                )
            except InvalidTimeFormat as exc:
                logger.warning(
                    "Skipping offering %s of subject %s: %s",
                    offering.id,
                    offering.subject_code,
                    exc.message,
                )
                report.rejected.append(
                    RejectedOffering(offering_id=offering.id, subject_id=offering.subject_id, reason=exc.message)
                )
                continue
            report.slots.append(slot)
    return report


def materialize(
    selections: Sequence[SubjectSelection],
    catalog: CatalogIndex,
    *,
    id_factory: Callable[[], str] = _new_slot_id,
) -> list[Slot]:
    return materialize_report(selections, catalog, id_factory=id_factory).slots
