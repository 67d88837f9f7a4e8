from collections.abc import Generator
from functools import lru_cache
import os

from fastapi import Depends
from sqlalchemy.orm import Session

from timetabler.core.config import Settings, get_settings
from timetabler.db.session import SessionLocal
from timetabler.services.catalog import CatalogIndex, InMemoryCatalog, SqlCatalog, load_catalog_file
from timetabler.services.sessions import SessionRegistry, get_session_registry


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache(maxsize=8)
def _file_catalog(path: str, mtime_ns: int) -> InMemoryCatalog:
    return load_catalog_file(path)


def file_catalog(path: str) -> InMemoryCatalog:
    """Parsed catalog file, re-read whenever the file's modification time changes."""
    try:
        mtime_ns = os.stat(path).st_mtime_ns
    except OSError:
        # Missing or unreadable: let the loader raise its ConfigurationError.
        return load_catalog_file(path)
    return _file_catalog(path, mtime_ns)


def get_catalog(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CatalogIndex:
    if settings.catalog_file:
        return file_catalog(settings.catalog_file)
    return SqlCatalog(db)


def get_registry() -> SessionRegistry:
    return get_session_registry()
