from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from timetabler.api.deps import get_catalog, get_db, get_registry
from timetabler.core.config import Settings, get_settings
from timetabler.schemas.timetable import (
    ClashOut,
    ClashResolutionOut,
    EngineStateOut,
    PlaceRequest,
    RejectedOfferingOut,
    RemoveRequest,
    ReplaceRequest,
    ResolutionOptionOut,
    SelectionsPayload,
    SlotOut,
    SubjectConflictStatsOut,
)
from timetabler.services.catalog import CatalogIndex
from timetabler.services.sessions import (
    SessionHandle,
    SessionRegistry,
    create_session,
    delete_session,
    load_session,
    save_selections,
)
from timetabler.services.slots import Clash

router = APIRouter()


def _clash_out(clash: Clash) -> ClashOut:
    return ClashOut(
        slot_ids=[clash.first_slot_id, clash.second_slot_id],
        subject_ids=[clash.first_subject_id, clash.second_subject_id],
        subject_codes=[clash.first_subject_code, clash.second_subject_code],
        kind=clash.kind,
        severity=clash.severity,
        day_of_week=clash.day_of_week,
        start_time=clash.start_time,
        end_time=clash.end_time,
        overlap_minutes=clash.overlap_minutes,
        message=clash.message,
    )


def _state_out(handle: SessionHandle) -> EngineStateOut:
    controller = handle.controller
    state = controller.state
    return EngineStateOut(
        session_id=handle.session_id,
        name=handle.name,
        revision=state.revision,
        expires_at=handle.expires_at,
        displayed=[SlotOut.model_validate(slot) for slot in state.displayed],
        unplaced=[SlotOut.model_validate(slot) for slot in state.unplaced],
        dropped=[SlotOut.model_validate(slot) for slot in state.dropped],
        non_conflicting=[SlotOut.model_validate(slot) for slot in controller.non_conflicting_slots()],
        clashes=[_clash_out(clash) for clash in state.clashes],
        rejected=[RejectedOfferingOut.model_validate(item) for item in state.rejected],
    )


def _check_selection_limit(payload: SelectionsPayload, settings: Settings) -> None:
    if len(payload.selections) > settings.max_selected_subjects:
        raise HTTPException(
            status_code=422,
            detail=f"At most {settings.max_selected_subjects} subjects can be selected",
        )


def _load(
    session_id: str,
    db: Session,
    registry: SessionRegistry,
    catalog: CatalogIndex,
    settings: Settings,
) -> SessionHandle:
    return load_session(db, session_id, registry=registry, catalog=catalog, settings=settings)


@router.post("/sessions", response_model=EngineStateOut, status_code=status.HTTP_201_CREATED)
def create_timetable_session(
    payload: SelectionsPayload,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    _check_selection_limit(payload, settings)
    handle = create_session(
        db,
        registry=registry,
        catalog=catalog,
        settings=settings,
        selections=payload.to_selections(),
        name=payload.name,
    )
    with handle.lock:
        return _state_out(handle)


@router.get("/sessions/{session_id}", response_model=EngineStateOut)
def get_timetable_session(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        return _state_out(handle)


@router.put("/sessions/{session_id}/selections", response_model=EngineStateOut)
def update_selections(
    session_id: str,
    payload: SelectionsPayload,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    _check_selection_limit(payload, settings)
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        save_selections(
            db,
            handle,
            catalog=catalog,
            settings=settings,
            selections=payload.to_selections(),
            name=payload.name,
        )
        return _state_out(handle)


@router.post("/sessions/{session_id}/regenerate", response_model=EngineStateOut)
def regenerate_session(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        handle.controller.regenerate(handle.controller.selections, catalog=catalog)
        return _state_out(handle)


@router.post("/sessions/{session_id}/place", response_model=EngineStateOut)
def place_slot(
    session_id: str,
    payload: PlaceRequest,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        handle.controller.place(payload.slot_id)
        return _state_out(handle)


@router.post("/sessions/{session_id}/replace", response_model=EngineStateOut)
def replace_slot(
    session_id: str,
    payload: ReplaceRequest,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        handle.controller.replace(payload.slot_id, payload.conflicting_slot_id)
        return _state_out(handle)


@router.post("/sessions/{session_id}/remove", response_model=EngineStateOut)
def remove_slot(
    session_id: str,
    payload: RemoveRequest,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        handle.controller.remove(payload.slot_id)
        return _state_out(handle)


@router.post("/sessions/{session_id}/place-all", response_model=EngineStateOut)
def place_all_slots(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        handle.controller.place_all()
        return _state_out(handle)


@router.post("/sessions/{session_id}/remove-all", response_model=EngineStateOut)
def remove_all_slots(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> EngineStateOut:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        handle.controller.remove_all()
        return _state_out(handle)


@router.get("/sessions/{session_id}/resolutions", response_model=list[ClashResolutionOut])
def list_resolutions(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> list[ClashResolutionOut]:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        resolutions = handle.controller.suggest_resolutions()
    return [
        ClashResolutionOut(
            clash=_clash_out(item.clash),
            options=[ResolutionOptionOut.model_validate(option) for option in item.options],
        )
        for item in resolutions
    ]


@router.get("/sessions/{session_id}/stats", response_model=list[SubjectConflictStatsOut])
def subject_stats(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
    catalog: CatalogIndex = Depends(get_catalog),
    settings: Settings = Depends(get_settings),
) -> list[SubjectConflictStatsOut]:
    handle = _load(session_id, db, registry, catalog, settings)
    with handle.lock:
        stats = handle.controller.subject_conflict_stats()
    return [SubjectConflictStatsOut.model_validate(item) for item in stats.values()]


@router.delete("/sessions/{session_id}")
def delete_timetable_session(
    session_id: str,
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    delete_session(db, session_id, registry=registry)
    return {"success": True}
