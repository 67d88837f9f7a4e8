from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from timetabler.models.subject import ClassType


class ClashKind(str, Enum):
    time = "time"
    venue = "venue"


class ClashSeverity(str, Enum):
    warning = "warning"
    error = "error"


@dataclass(frozen=True)
class ClassOffering:
    """A recurring weekly session template as published by the catalog."""

    id: str
    subject_id: str
    subject_code: str
    subject_name: str
    kind: ClassType
    day_of_week: int
    start_time: str
    end_time: str
    venue: str = ""
    instructor: str | None = None
    capacity: int | None = None
    group_name: str | None = None

    @property
    def is_tutorial(self) -> bool:
        return self.kind == ClassType.tutorial


@dataclass(frozen=True)
class SubjectSelection:
    subject_id: str
    chosen_group_id: str | None = None
    color: str | None = None


@dataclass(frozen=True, eq=False)
class Slot:
    """One materialized weekly occurrence. Identity is the generated id, never the content."""

    id: str
    offering_id: str
    subject_id: str
    subject_code: str
    subject_name: str
    kind: ClassType
    day_of_week: int
    start_time: str
    end_time: str
    start_minute: int
    end_minute: int
    venue: str
    color: str
    from_tutorial: bool = False
    instructor: str | None = None
    capacity: int | None = None
    group_name: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Slot):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def signature(self) -> tuple[str, str]:
        return (self.subject_id, self.offering_id)


@dataclass(frozen=True)
class Clash:
    first_slot_id: str
    second_slot_id: str
    first_subject_id: str
    second_subject_id: str
    first_subject_code: str
    second_subject_code: str
    kind: ClashKind
    day_of_week: int
    start_time: str
    end_time: str
    overlap_minutes: int
    severity: ClashSeverity
    message: str

    @property
    def slot_ids(self) -> frozenset[str]:
        return frozenset((self.first_slot_id, self.second_slot_id))

    @property
    def subject_ids(self) -> frozenset[str]:
        return frozenset((self.first_subject_id, self.second_subject_id))

    def involves(self, slot_id: str) -> bool:
        return slot_id == self.first_slot_id or slot_id == self.second_slot_id

    def other(self, slot_id: str) -> str:
        if slot_id == self.first_slot_id:
            return self.second_slot_id
        if slot_id == self.second_slot_id:
            return self.first_slot_id
        raise KeyError(slot_id)


@dataclass(frozen=True)
class RejectedOffering:
    offering_id: str
    subject_id: str
    reason: str


@dataclass
class EngineState:
    displayed: list[Slot] = field(default_factory=list)
    unplaced: list[Slot] = field(default_factory=list)
    clashes: list[Clash] = field(default_factory=list)
    dropped: list[Slot] = field(default_factory=list)
    rejected: list[RejectedOffering] = field(default_factory=list)
    revision: int = 0

    @property
    def slots(self) -> list[Slot]:
        return [*self.displayed, *self.unplaced]

    def clashing_slot_ids(self) -> set[str]:
        ids: set[str] = set()
        for clash in self.clashes:
            ids.update(clash.slot_ids)
        return ids
