import itertools
import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

import pytest
from fastapi.testclient import TestClient #fake http client that calls the FastAPI routes without running a server
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from timetabler.api.deps import get_db
from timetabler.db.base import Base
from timetabler.main import app
from timetabler.models.subject import ClassType
from timetabler.services.catalog import InMemoryCatalog
from timetabler.services.sessions import clear_session_registry
from timetabler.services.slots import ClassOffering
import timetabler.models  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def client():
    clear_session_registry() #controllers live in-process, so earlier tests would leak sessions
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    clear_session_registry()


@pytest.fixture()
def make_offering():
    counter = itertools.count(1)

    def factory(
        subject_id: str,
        day: int = 1,
        start: str = "09:00",
        end: str = "10:00",
        venue: str = "Room A101",
        kind: ClassType = ClassType.lecture,
        offering_id: str | None = None,
        group_name: str | None = None,
    ) -> ClassOffering:
        return ClassOffering(
            id=offering_id or f"off-{next(counter)}",
            subject_id=subject_id,
            subject_code=subject_id.upper(),
            subject_name=f"Subject {subject_id.upper()}",
            kind=kind,
            day_of_week=day,
            start_time=start,
            end_time=end,
            venue=venue,
            group_name=group_name,
        )

    return factory


@pytest.fixture()
def sample_catalog(make_offering):
    return InMemoryCatalog(
        [
            make_offering("cs101", day=1, start="09:00", end="10:30", venue="Room A101", offering_id="cs-lec-1"),
            make_offering("cs101", day=3, start="09:00", end="10:30", venue="Room A101", offering_id="cs-lec-2"),
            make_offering("cs101", day=5, start="14:00", end="16:00", venue="Computer Lab 1", kind=ClassType.lab, offering_id="cs-lab"),
            make_offering("cs101", day=2, start="13:00", end="14:00", venue="Room A105", kind=ClassType.tutorial, offering_id="cs-tut-a", group_name="Tutorial Group A"),
            make_offering("cs101", day=2, start="14:00", end="15:00", venue="Room A105", kind=ClassType.tutorial, offering_id="cs-tut-b", group_name="Tutorial Group B"),
            make_offering("math201", day=1, start="10:00", end="11:30", venue="Room A101", offering_id="math-lec-1"),
            make_offering("math201", day=4, start="11:00", end="12:30", venue="Room B201", offering_id="math-lec-2"),
            make_offering("math201", day=3, start="14:00", end="15:00", venue="Room B202", kind=ClassType.tutorial, offering_id="math-tut-a", group_name="Tutorial Group A"),
            make_offering("eng105", day=1, start="14:00", end="15:30", venue="Room C301", offering_id="eng-lec-1"),
            make_offering("eng105", day=2, start="13:30", end="14:30", venue="Room C305", kind=ClassType.tutorial, offering_id="eng-tut-a", group_name="Tutorial Group A"),
        ]
    )
