"""API package: provides FastAPI dependencies and route definitions for the application."""

from .dependencies import get_db_session, get_owner_id, get_reconciler, require_service_key  # noqa: F401
from .planner import router as planner_router  # noqa: F401
from .routes import router  # noqa: F401
