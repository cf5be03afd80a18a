"""Main entrypoint and application factory for the Routine Ledger API.

This module initializes the FastAPI application, configures logging, creates the database tables, maps domain errors
to HTTP responses, and exposes the Scalar API reference endpoint for interactive OpenAPI documentation. It also
includes the main entrypoint for running the app with Uvicorn.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from scalar_fastapi import get_scalar_api_reference
from sqlalchemy.exc import OperationalError

from app.api.planner import router as planner_router
from app.api.routes import router
from app.core.db import init_db
from app.core.errors import ImmutableRecordError, NotFoundError
from app.core.settings import get_settings
from app.core.utils import ensure_dir, get_logger

LOGGER_NAMES = (
    "routine-ledger",
    "routine-ledger.api",
    "routine-ledger.planner",
    "routine-ledger.reconciler",
    "routine-ledger.store",
)


# --- Logging Setup ---
def setup_logging() -> None:
    """Configure logging to file and console, and ensure the log directory exists."""
    log_path = Path(get_settings().log_file)
    ensure_dir(log_path.parent)
    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    for name in LOGGER_NAMES:
        logger = get_logger(name)
        logger.setLevel(logging.INFO)
        # Add file handler for persistent logs (not colorized)
        if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
            logger.addHandler(file_handler)


setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler to create the planner tables using SQLAlchemy (PostgreSQL compatible)."""
    _ = app  # Silence unused argument warning
    try:
        init_db()
    except OperationalError as exc:
        get_logger("routine-ledger").exception(f"Failed to create tables: {exc}")
        raise
    yield


app = FastAPI(
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    title="Routine Ledger API",
    description="""
    The Routine Ledger API stores a personal planner's routine jobs, financial records, habits, tasks and goals,
    and pays out routine jobs once their monthly quota of occurrences is logged.

    **Endpoints:**
    - `POST /reconcile`: Daily payout reconciliation (scheduler only, bearer service key).
    - `/routine-jobs`, `/financial-records`, `/habits`, `/tasks`, `/goals`: owner CRUD (`X-User-Id` header).
    - `GET /routine-jobs/{{job_id}}/progress`: Read accrual progress of a routine job.
    - `GET /health`: Health check endpoint.
    - `GET /scalar`: Interactive Scalar OpenAPI documentation.
    """,
    version="1.0.0",
)
app.include_router(router)
app.include_router(planner_router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Map missing or foreign rows to 404."""
    _ = request
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ImmutableRecordError)
async def immutable_record_handler(request: Request, exc: ImmutableRecordError) -> JSONResponse:
    """Map attempts to change payout records to 409."""
    _ = request
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.get("/scalar", include_in_schema=False)
async def scalar_docs() -> JSONResponse:
    """Return Scalar API reference."""
    return get_scalar_api_reference(openapi_url=app.openapi_url, title=app.title)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.server_host, port=settings.server_port, reload=True)
