import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from timetabler.api.deps import get_db
from timetabler.core.exceptions import ResourceNotFoundError
from timetabler.models.subject import ClassSchedule, Subject, TutorialGroup
from timetabler.schemas.subject import SubjectCreate, SubjectOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=list[SubjectOut])
def list_subjects(
    q: str | None = Query(default=None, max_length=100),
    department: str | None = Query(default=None, max_length=200),
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    query = select(Subject).order_by(Subject.code)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(Subject.code.ilike(pattern), Subject.name.ilike(pattern)))
    if department:
        query = query.where(Subject.department == department)
    return list(db.execute(query).scalars())


@router.get("/{subject_id}", response_model=SubjectOut)
def get_subject(subject_id: str, db: Session = Depends(get_db)) -> SubjectOut:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject", subject_id)
    return subject


@router.post("/", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db)) -> SubjectOut:
    existing = db.execute(select(Subject).where(Subject.code == payload.code)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Subject code already exists")

    subject = Subject(**payload.model_dump(exclude={"schedules", "tutorials"}))
    subject.schedules = [
        ClassSchedule(**item.model_dump(), created_order=index) for index, item in enumerate(payload.schedules)
    ]
    subject.tutorials = [
        TutorialGroup(**item.model_dump(), created_order=index) for index, item in enumerate(payload.tutorials)
    ]
    db.add(subject)
    db.commit()
    db.refresh(subject)
    logger.info(
        "Created subject %s with %d schedule(s) and %d tutorial group(s)",
        subject.code,
        len(subject.schedules),
        len(subject.tutorials),
    )
    return subject


@router.delete("/{subject_id}")
def delete_subject(subject_id: str, db: Session = Depends(get_db)) -> dict:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject", subject_id)
    db.delete(subject)
    db.commit()
    logger.info("Deleted subject %s", subject.code)
    return {"success": True}
