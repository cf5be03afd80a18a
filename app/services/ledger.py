"""LedgerStore: system-only writes to the routine-job accrual log.

Only the reconciler goes through this module. Owners can read accrual progress but have no path that appends
completions, resets the log or emits a payout record.
"""

import datetime as dt
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from app.core.db import FinancialRecordRow, RoutineJobCompletionRow, RoutineJobRow, SessionLocal
from app.core.models import RecordType, RoutineJob
from app.core.schedule import CalendarName, is_due, payout_description, required_completions
from app.core.utils import get_logger, new_id

logger = get_logger("routine-ledger.store")

OccurrenceStatus = Literal["accrued", "paid_out", "already_logged", "not_due", "missing"]


@dataclass
class Occurrence:
    """Result of trying to log one occurrence of a routine job."""

    status: OccurrenceStatus
    completed: int = 0
    required: int = 0
    financial_record_id: str | None = None


class LedgerStore:
    """Reads active routine jobs and applies accrual/payout writes, one transaction per job."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        """Initialize the store with a session factory (defaults to the application's)."""
        self.session_factory = session_factory or SessionLocal

    def list_active_jobs(self) -> list[RoutineJob]:
        """Return snapshots of every active routine job, across all owners."""
        with self.session_factory() as session:
            stmt = (
                select(RoutineJobRow)
                .where(RoutineJobRow.active.is_(True))
                .options(selectinload(RoutineJobRow.completion_log))
                .order_by(RoutineJobRow.created_at)
            )
            rows = session.execute(stmt).scalars().all()
            return [RoutineJob.model_validate(row) for row in rows]

    def get_job(self, job_id: str) -> RoutineJob | None:
        """Return a snapshot of one routine job, or None."""
        with self.session_factory() as session:
            row = session.get(RoutineJobRow, job_id)
            return RoutineJob.model_validate(row) if row else None

    def record_occurrence(self, job_id: str, stamp: dt.date, calendar: CalendarName = "gregorian") -> Occurrence:
        """Append ``stamp`` to the job's completion log and pay out if the threshold is reached.

        The completion insert, the financial record and the log reset commit together or not at all. The due and
        idempotency checks are repeated here against the locked row, so a stale snapshot or an overlapping run
        cannot log the same day twice.
        """
        try:
            with self.session_factory.begin() as session:
                return self._record(session, job_id, stamp, calendar)
        except IntegrityError:
            # Another run committed the same (job, day) completion first.
            with self.session_factory() as session:
                row = session.get(RoutineJobRow, job_id)
                if row is not None and self._logged_before(session, row, stamp):
                    logger.warning(f"Job {job_id}: {stamp} logged concurrently by another run")
                    return Occurrence("already_logged", completed=row.completion_count)
            raise

    def _record(self, session: Session, job_id: str, stamp: dt.date, calendar: CalendarName) -> Occurrence:
        row = session.get(RoutineJobRow, job_id, with_for_update=True)
        if row is None:
            return Occurrence("missing")
        job = RoutineJob.model_validate(row)
        required = required_completions(job.frequency, job.days_of_week)
        if not is_due(job, stamp, calendar):
            return Occurrence("not_due", completed=len(job.completions), required=required)
        if self._logged_before(session, row, stamp):
            return Occurrence("already_logged", completed=len(job.completions), required=required)

        row.completion_log.append(RoutineJobCompletionRow(completed_on=stamp))
        session.flush()
        open_rows = row.open_completions
        if len(open_rows) < required:
            row.completion_count = len(open_rows)
            return Occurrence("accrued", completed=len(open_rows), required=required)

        record = FinancialRecordRow(
            id=new_id(),
            user_id=row.user_id,
            type=RecordType.INCOME.value,
            amount=row.earnings,
            description=payout_description(job.frequency, row.name),
            category=row.category,
            date=stamp,
            routine_job_id=row.id,
            is_payout=True,
        )
        session.add(record)
        session.flush()
        for completion in open_rows:
            completion.payout_record_id = record.id
        row.completion_count = 0
        row.last_payout_date = stamp
        return Occurrence("paid_out", completed=0, required=required, financial_record_id=record.id)

    def _logged_before(self, session: Session, row: RoutineJobRow, stamp: dt.date) -> bool:
        """True if ``stamp`` already has a completion for the job, open or consumed by a payout."""
        if row.last_payout_date == stamp:
            return True
        stmt = select(RoutineJobCompletionRow.id).where(
            RoutineJobCompletionRow.routine_job_id == row.id,
            RoutineJobCompletionRow.completed_on == stamp,
        )
        return session.execute(stmt).first() is not None
