from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from timetabler.db.base import Base
from timetabler.db.session import engine as default_engine
import timetabler.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("subjects", "class_schedules", "tutorial_groups", "timetable_sessions")


def missing_tables(bind: Engine | None = None) -> list[str]:
    bind = bind or default_engine
    with bind.connect() as connection:
        existing = set(inspect(connection).get_table_names())
    return [name for name in REQUIRED_TABLES if name not in existing]


def ensure_schema(bind: Engine | None = None) -> None:
    bind = bind or default_engine
    missing = missing_tables(bind)
    if not missing:
        return
    logger.info("Creating missing tables: %s", ", ".join(missing))
    Base.metadata.create_all(bind=bind)
