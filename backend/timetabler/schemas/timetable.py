from __future__ import annotations

from datetime import datetime
import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from timetabler.models.subject import ClassType
from timetabler.services.slots import ClashKind, ClashSeverity, SubjectSelection

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")
# Catalog files may use any string ids, not just uuids.
SELECTION_ID_MAX_LENGTH = 200


class SubjectSelectionIn(BaseModel):
    subject_id: str = Field(min_length=1, max_length=SELECTION_ID_MAX_LENGTH)
    chosen_group_id: str | None = Field(default=None, min_length=1, max_length=SELECTION_ID_MAX_LENGTH)
    color: str | None = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str | None) -> str | None:
        if value is not None and not COLOR_PATTERN.match(value):
            raise ValueError("Color must be a #RRGGBB hex value")
        return value

    def to_selection(self) -> SubjectSelection:
        return SubjectSelection(subject_id=self.subject_id, chosen_group_id=self.chosen_group_id, color=self.color)


class SelectionsPayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    selections: list[SubjectSelectionIn] = Field(default_factory=list)

    @field_validator("selections")
    @classmethod
    def validate_unique_subjects(cls, value: list[SubjectSelectionIn]) -> list[SubjectSelectionIn]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for item in value:
            if item.subject_id in seen:
                duplicates.append(item.subject_id)
            seen.add(item.subject_id)
        if duplicates:
            raise ValueError(f"Subject(s) selected more than once: {', '.join(duplicates)}")
        return value

    def to_selections(self) -> list[SubjectSelection]:
        return [item.to_selection() for item in self.selections]


class PlaceRequest(BaseModel):
    slot_id: str = Field(min_length=1)


class RemoveRequest(BaseModel):
    slot_id: str = Field(min_length=1)


class ReplaceRequest(BaseModel):
    slot_id: str = Field(min_length=1)
    conflicting_slot_id: str = Field(min_length=1)


class SlotOut(BaseModel):
    id: str
    offering_id: str
    subject_id: str
    subject_code: str
    subject_name: str
    kind: ClassType
    day_of_week: int
    start_time: str
    end_time: str
    venue: str
    instructor: str | None = None
    capacity: int | None = None
    group_name: str | None = None
    color: str
    from_tutorial: bool

    model_config = {"from_attributes": True}


class ClashOut(BaseModel):
    slot_ids: list[str]
    subject_ids: list[str]
    subject_codes: list[str]
    kind: ClashKind
    severity: ClashSeverity
    day_of_week: int
    start_time: str
    end_time: str
    overlap_minutes: int
    message: str


class RejectedOfferingOut(BaseModel):
    offering_id: str
    subject_id: str
    reason: str

    model_config = {"from_attributes": True}


class EngineStateOut(BaseModel):
    session_id: str
    name: str
    revision: int
    expires_at: datetime
    displayed: list[SlotOut]
    unplaced: list[SlotOut]
    dropped: list[SlotOut]
    non_conflicting: list[SlotOut]
    clashes: list[ClashOut]
    rejected: list[RejectedOfferingOut]


class ResolutionOptionOut(BaseModel):
    action: Literal["place", "replace", "remove"]
    slot_id: str
    conflicting_slot_id: str | None = None
    description: str

    model_config = {"from_attributes": True}


class ClashResolutionOut(BaseModel):
    clash: ClashOut
    options: list[ResolutionOptionOut]


class SubjectConflictStatsOut(BaseModel):
    subject_id: str
    subject_code: str
    total: int
    conflicting: int
    non_conflicting: int

    model_config = {"from_attributes": True}
