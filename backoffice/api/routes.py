"""
Restaurant back office — router registration and the health endpoint.

Feature routers live in ``backoffice.routers``; ``register_routes(app)``
mounts all of them, plus:

  GET  /api/health    — database status, uptime and runtime counters
"""

from __future__ import annotations

import asyncio
import logging
import time

from fastapi import APIRouter, FastAPI
from sqlalchemy import text

from backoffice.api.schemas import HealthResponse
from backoffice.metrics import metrics_snapshot

logger = logging.getLogger(__name__)

# Module-level start time for uptime reporting
_START_TIME: float = time.time()

API_VERSION = "1.0.0"

system_router = APIRouter(prefix="/api", tags=["system"])


def _ping_db() -> str:
    from backoffice.database import get_db
    db = get_db()
    try:
        db.execute(text("SELECT 1"))
        return "ok"
    except Exception as exc:
        logger.warning("Health check database ping failed: %s", exc)
        return f"error: {exc}"
    finally:
        db.close()


@system_router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check():
    db_status = await asyncio.to_thread(_ping_db)
    return HealthResponse(
        status="ok" if db_status == "ok" else "degraded",
        version=API_VERSION,
        db=db_status,
        uptime_seconds=round(time.time() - _START_TIME, 1),
        metrics=metrics_snapshot(),
    )


def register_routes(app: FastAPI) -> None:
    """Mount all routers onto ``app``.

    Call this once from ``backoffice.app`` after creating the FastAPI instance.
    """
    from backoffice.routers import (
        employees, finance, inventory, labor, payroll, scheduling, settings, tips,
    )

    app.include_router(settings.router)
    app.include_router(employees.router)
    app.include_router(scheduling.router)
    app.include_router(payroll.router)
    app.include_router(labor.router)
    app.include_router(tips.router)
    app.include_router(inventory.router)
    app.include_router(finance.router)
    app.include_router(system_router)

    logger.info("Routes registered: %d total endpoints", len(app.routes))
