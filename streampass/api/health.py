"""Liveness and readiness checks."""
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from streampass.core.database import get_engine

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness check: DB connectivity + required tables."""
    required_tables = ["passes", "subscribers", "pass_tiers"]
    try:
        present = set(inspect(get_engine()).get_table_names())
    except Exception as e:
        return JSONResponse(status_code=503, content={"ok": False, "error": str(e)})
    missing = [name for name in required_tables if name not in present]
    if missing:
        return JSONResponse(status_code=503, content={"ok": False, "missing_tables": missing})
    return {"ok": True}
