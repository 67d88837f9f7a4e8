from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
from threading import Lock, RLock
from typing import Iterable, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from timetabler.core.config import Settings
from timetabler.core.exceptions import ResourceNotFoundError
from timetabler.models.timetable_session import TimetableSession
from timetabler.services.catalog import CatalogIndex
from timetabler.services.resolution import ResolutionController
from timetabler.services.slots import SubjectSelection

logger = logging.getLogger(__name__)


@dataclass
class SessionHandle:
    session_id: str
    name: str
    controller: ResolutionController
    expires_at: datetime
    lock: RLock = field(default_factory=RLock)


class SessionRegistry:
    """In-process owner of one ResolutionController per timetable session.

    Callers must hold ``handle.lock`` while reading or mutating a controller.
    """

    def __init__(self) -> None:
        self._handles: dict[str, SessionHandle] = {}
        self._lock = Lock()

    def get(self, session_id: str) -> SessionHandle | None:
        with self._lock:
            return self._handles.get(session_id)

    def put(self, handle: SessionHandle) -> SessionHandle:
        with self._lock:
            existing = self._handles.get(handle.session_id)
            if existing is not None:
                return existing
            self._handles[handle.session_id] = handle
            return handle

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._handles.pop(session_id, None)

    def discard_many(self, session_ids: Iterable[str]) -> None:
        with self._lock:
            for session_id in session_ids:
                self._handles.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._handles.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)


_registry = SessionRegistry()


def get_session_registry() -> SessionRegistry:
    return _registry


def clear_session_registry() -> None:
    _registry.clear()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on round trip.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def selections_to_json(selections: Sequence[SubjectSelection]) -> list[dict]:
    payload: list[dict] = []
    for selection in selections:
        item = {"subject_id": selection.subject_id}
        if selection.chosen_group_id is not None:
            item["chosen_group_id"] = selection.chosen_group_id
        if selection.color is not None:
            item["color"] = selection.color
        payload.append(item)
    return payload


def selections_from_json(raw: Iterable[dict]) -> list[SubjectSelection]:
    return [
        SubjectSelection(
            subject_id=str(item["subject_id"]),
            chosen_group_id=item.get("chosen_group_id"),
            color=item.get("color"),
        )
        for item in raw or []
        if item.get("subject_id")
    ]


def _new_controller(catalog: CatalogIndex, settings: Settings) -> ResolutionController:
    return ResolutionController(catalog, error_threshold_minutes=settings.clash_error_threshold_minutes)


def purge_expired_sessions(db: Session, registry: SessionRegistry, *, now: datetime | None = None) -> int:
    now = now or _utcnow()
    expired_ids = [
        row.id
        for row in db.execute(select(TimetableSession)).scalars()
        if _as_aware(row.expires_at) <= now
    ]
    if not expired_ids:
        return 0
    db.execute(delete(TimetableSession).where(TimetableSession.id.in_(expired_ids)))
    db.commit()
    registry.discard_many(expired_ids)
    logger.info("Purged %d expired timetable session(s)", len(expired_ids))
    return len(expired_ids)


def create_session(
    db: Session,
    *,
    registry: SessionRegistry,
    catalog: CatalogIndex,
    settings: Settings,
    selections: Sequence[SubjectSelection],
    name: str | None = None,
) -> SessionHandle:
    expires_at = _utcnow() + timedelta(days=settings.session_ttl_days)
    record = TimetableSession(
        name=name or settings.default_timetable_name,
        selections=selections_to_json(selections),
        expires_at=expires_at,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    controller = _new_controller(catalog, settings)
    controller.regenerate(selections)
    handle = registry.put(
        SessionHandle(session_id=record.id, name=record.name, controller=controller, expires_at=expires_at)
    )
    logger.info("Created timetable session %s with %d selection(s)", record.id, len(selections))
    return handle


def load_session(
    db: Session,
    session_id: str,
    *,
    registry: SessionRegistry,
    catalog: CatalogIndex,
    settings: Settings,
) -> SessionHandle:
    """Return the live handle, rebuilding engine state from persisted selections when needed."""
    purge_expired_sessions(db, registry)
    handle = registry.get(session_id)
    if handle is not None:
        return handle

    record = db.get(TimetableSession, session_id)
    if record is None:
        raise ResourceNotFoundError("Timetable session", session_id)

    controller = _new_controller(catalog, settings)
    controller.regenerate(selections_from_json(record.selections))
    logger.info("Rebuilt timetable session %s from saved selections", session_id)
    return registry.put(
        SessionHandle(
            session_id=record.id,
            name=record.name,
            controller=controller,
            expires_at=_as_aware(record.expires_at),
        )
    )


def save_selections(
    db: Session,
    handle: SessionHandle,
    *,
    catalog: CatalogIndex,
    settings: Settings,
    selections: Sequence[SubjectSelection],
    name: str | None = None,
) -> SessionHandle:
    record = db.get(TimetableSession, handle.session_id)
    if record is None:
        raise ResourceNotFoundError("Timetable session", handle.session_id)

    expires_at = _utcnow() + timedelta(days=settings.session_ttl_days)
    record.selections = selections_to_json(selections)
    record.expires_at = expires_at
    if name:
        record.name = name
    db.commit()

    handle.controller.regenerate(selections, catalog=catalog)
    handle.name = record.name
    handle.expires_at = expires_at
    return handle


def delete_session(db: Session, session_id: str, *, registry: SessionRegistry) -> None:
    record = db.get(TimetableSession, session_id)
    if record is None:
        raise ResourceNotFoundError("Timetable session", session_id)
    db.delete(record)
    db.commit()
    registry.discard(session_id)
    logger.info("Deleted timetable session %s", session_id)
