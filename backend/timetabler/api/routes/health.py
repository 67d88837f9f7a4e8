from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from timetabler.db.bootstrap import missing_tables
from timetabler.db.session import engine
from timetabler.services.sessions import get_session_registry

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    db_ok = True
    db_error: str | None = None
    missing: list[str] = []

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        missing = missing_tables(engine)
    except Exception as exc:  # pragma: no cover - environment dependent
        db_ok = False
        db_error = str(exc)

    ready = db_ok and not missing
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {
            "ok": db_ok,
            "schema_ok": not missing,
            "missing_tables": missing,
            "error": db_error,
        },
        "sessions": {"active": len(get_session_registry())},
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
