"""Core package: provides models, database helpers, settings, scheduling rules and shared utilities."""

from .db import SessionLocal, get_session  # noqa: F401
from .models import FinancialRecord, JobOutcome, ReconcileReport, RoutineJob  # noqa: F401
from .settings import Settings  # noqa: F401
from .utils import get_logger  # noqa: F401
