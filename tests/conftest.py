"""Shared fixtures: an in-memory database recreated for every test, and helpers to seed routine jobs."""

import datetime as dt
import os
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SERVICE_ROLE_KEY"] = "test-service-key"
os.environ["CALENDAR"] = "gregorian"
os.environ["TIMEZONE"] = "Asia/Tehran"
os.environ["LOG_FILE"] = str(Path(tempfile.gettempdir()) / "routine_ledger_tests.log")

import pytest  # noqa: E402
from sqlalchemy import select  # noqa: E402

from app.core.db import (  # noqa: E402
    Base,
    FinancialRecordRow,
    RoutineJobCompletionRow,
    RoutineJobRow,
    SessionLocal,
    engine,
)
from app.core.settings import Settings  # noqa: E402
from app.services.ledger import LedgerStore  # noqa: E402
from app.workers.reconciler import Reconciler  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db() -> Iterator[None]:
    """Drop and recreate every table around each test."""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def settings() -> Settings:
    """Settings pinned to the Gregorian calendar."""
    return Settings(calendar="gregorian")


@pytest.fixture
def store() -> LedgerStore:
    """A ledger store on the test database."""
    return LedgerStore(SessionLocal)


@pytest.fixture
def reconciler(store: LedgerStore, settings: Settings) -> Reconciler:
    """A reconciler on the test database."""
    return Reconciler(store, settings)


@pytest.fixture
def make_job() -> Callable[..., str]:
    """Insert a routine job row and return its id."""

    def _make(**overrides: object) -> str:
        values = {
            "user_id": "user-1",
            "name": "تدریس",
            "earnings": 100000.0,
            "frequency": "daily",
            "days_of_week": [],
            "active": True,
            "category": "career",
        }
        values.update(overrides)
        with SessionLocal.begin() as session:
            row = RoutineJobRow(**values)
            session.add(row)
            session.flush()
            return row.id

    return _make


@pytest.fixture
def add_completion() -> Callable[[str, dt.date], None]:
    """Append an open completion to a job's log directly."""

    def _add(job_id: str, day: dt.date) -> None:
        with SessionLocal.begin() as session:
            session.add(RoutineJobCompletionRow(routine_job_id=job_id, completed_on=day))
            row = session.get(RoutineJobRow, job_id)
            row.completion_count += 1

    return _add


@pytest.fixture
def payouts() -> Callable[[str], list[FinancialRecordRow]]:
    """Return the financial records linked to a routine job."""

    def _payouts(job_id: str) -> list[FinancialRecordRow]:
        with SessionLocal() as session:
            stmt = select(FinancialRecordRow).where(FinancialRecordRow.routine_job_id == job_id)
            return list(session.execute(stmt).scalars().all())

    return _payouts
