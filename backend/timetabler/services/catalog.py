from __future__ import annotations

import json
from collections import defaultdict
from pathlib import Path
from typing import Iterable, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from timetabler.core.exceptions import ConfigurationError
from timetabler.models.subject import ClassType, Subject
from timetabler.services.slots import ClassOffering


class CatalogIndex(Protocol):
    def lookup(self, subject_id: str) -> list[ClassOffering]:
        """Offerings of a subject; empty for an unknown subject."""
        ...


class InMemoryCatalog:
    def __init__(self, offerings: Iterable[ClassOffering] = ()) -> None:
        self._by_subject: dict[str, list[ClassOffering]] = defaultdict(list)
        for offering in offerings:
            self._by_subject[offering.subject_id].append(offering)

    def lookup(self, subject_id: str) -> list[ClassOffering]:
        return list(self._by_subject.get(subject_id, ()))

    def subject_ids(self) -> list[str]:
        return list(self._by_subject)

    @classmethod
    def from_dicts(cls, subjects: Iterable[dict]) -> "InMemoryCatalog":
        """Build from ``{"id", "code", "name", "schedules": [...], "tutorials": [...]}`` records."""
        offerings: list[ClassOffering] = []
        for subject in subjects:
            for schedule in subject.get("schedules", []):
                offerings.append(
                    ClassOffering(
                        id=str(schedule["id"]),
                        subject_id=str(subject["id"]),
                        subject_code=subject["code"],
                        subject_name=subject["name"],
                        kind=ClassType(schedule["type"]),
                        day_of_week=int(schedule["day_of_week"]),
                        start_time=schedule["start_time"],
                        end_time=schedule["end_time"],
                        venue=schedule.get("venue") or "",
                        instructor=schedule.get("instructor"),
                        capacity=schedule.get("max_capacity"),
                    )
                )
            for tutorial in subject.get("tutorials", []):
                offerings.append(
                    ClassOffering(
                        id=str(tutorial["id"]),
                        subject_id=str(subject["id"]),
                        subject_code=subject["code"],
                        subject_name=subject["name"],
                        kind=ClassType.tutorial,
                        day_of_week=int(tutorial["day_of_week"]),
                        start_time=tutorial["start_time"],
                        end_time=tutorial["end_time"],
                        venue=tutorial.get("venue") or "",
                        instructor=tutorial.get("instructor"),
                        capacity=tutorial.get("max_capacity"),
                        group_name=tutorial.get("group_name"),
                    )
                )
        return cls(offerings)


def load_catalog_file(path: str | Path) -> InMemoryCatalog:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to read catalog file {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise ConfigurationError(f"Catalog file {path} must contain a list of subjects")
    try:
        return InMemoryCatalog.from_dicts(raw)
    except (KeyError, ValueError, TypeError) as exc:
        raise ConfigurationError(f"Catalog file {path} has an invalid subject record: {exc}") from exc


class SqlCatalog:
    """Catalog view over the subjects tables. Class schedules come first, then tutorial groups."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def lookup(self, subject_id: str) -> list[ClassOffering]:
        subject = self.db.execute(select(Subject).where(Subject.id == subject_id)).scalar_one_or_none()
        if subject is None:
            return []
        offerings = [
            ClassOffering(
                id=schedule.id,
                subject_id=subject.id,
                subject_code=subject.code,
                subject_name=subject.name,
                kind=schedule.type,
                day_of_week=schedule.day_of_week,
                start_time=schedule.start_time,
                end_time=schedule.end_time,
                venue=schedule.venue or "",
                instructor=schedule.instructor,
                capacity=schedule.max_capacity,
            )
            for schedule in subject.schedules
        ]
        offerings.extend(
            ClassOffering(
                id=tutorial.id,
                subject_id=subject.id,
                subject_code=subject.code,
                subject_name=subject.name,
                kind=ClassType.tutorial,
                day_of_week=tutorial.day_of_week,
                start_time=tutorial.start_time,
                end_time=tutorial.end_time,
                venue=tutorial.venue or "",
                instructor=tutorial.instructor,
                capacity=tutorial.max_capacity,
                group_name=tutorial.group_name,
            )
            for tutorial in subject.tutorials
        )
        return offerings
