"""
Restaurant Back Office - FastAPI Application

Serves the labor, scheduling, tips, inventory and finance calculators over
HTTP.  Start it with ``python start_server.py`` or:

    uvicorn backoffice.app:app --reload --port 8001
"""

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice import config
from backoffice.api.routes import API_VERSION, register_routes
from backoffice.core.errors import BackOfficeError
from backoffice.core.logging import configure_logging
from backoffice.database import engine, init_db
from backoffice.metrics import record_error, record_rejection, record_request

configure_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup and release pooled connections on shutdown."""
    logger.info("Back office %s starting on %s database", API_VERSION, engine.dialect.name)
    init_db()
    yield
    engine.dispose()
    logger.info("Back office stopped")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Restaurant Back Office",
    version=API_VERSION,
    description="Scheduling, payroll, tips, inventory and finance for restaurant operators",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def count_requests(request: Request, call_next):
    record_request()
    return await call_next(request)


# ---------------------------------------------------------------------------
# Exception handlers: BackOfficeError keeps its own status, anything else
# becomes a logged 500.
# ---------------------------------------------------------------------------

@app.exception_handler(BackOfficeError)
async def backoffice_error_handler(request: Request, exc: BackOfficeError):
    record_rejection(type(exc).__name__)
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    content = exc.to_dict()
    content["path"] = request.url.path
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    record_error()
    logger.error(
        "Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path,
        exc_info=exc,
    )
    content = {
        "detail": "Internal server error",
        "type": type(exc).__name__,
        "path": request.url.path,
    }
    if config.EXPOSE_TRACEBACKS:
        content["detail"] = str(exc)
        content["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

register_routes(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backoffice.app:app", port=config.PORT, reload=True, log_level=config.LOG_LEVEL.lower())
