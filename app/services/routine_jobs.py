"""Owner-facing routine job operations.

Owners create, edit, pause and delete their jobs and read accrual progress. Accrual state itself is written only by
:class:`app.services.ledger.LedgerStore`.
"""

from sqlalchemy.orm import Session

from app.core.db import RoutineJobRow
from app.core.models import AccrualProgress, RoutineJob, RoutineJobCreate, RoutineJobUpdate
from app.core.schedule import required_completions
from app.services.repository import OwnerScopedRepository


class RoutineJobService:
    """CRUD and read-only progress for one owner's routine jobs."""

    def __init__(self, session: Session) -> None:
        """Initialize the service with a SQLAlchemy session."""
        self.rows = OwnerScopedRepository(session, RoutineJobRow, "routine job")

    def list_jobs(self, user_id: str) -> list[RoutineJob]:
        """Return the owner's jobs, newest first."""
        rows = self.rows.list_rows(user_id, RoutineJobRow.created_at.desc())
        return [RoutineJob.model_validate(row) for row in rows]

    def get_job(self, user_id: str, job_id: str) -> RoutineJob:
        """Return one job."""
        return RoutineJob.model_validate(self.rows.get(user_id, job_id))

    def create_job(self, user_id: str, data: RoutineJobCreate) -> RoutineJob:
        """Create an active job with an empty completion log."""
        row = self.rows.create(user_id, **data.model_dump())
        return RoutineJob.model_validate(row)

    def update_job(self, user_id: str, job_id: str, data: RoutineJobUpdate) -> RoutineJob:
        """Apply owner edits. Only fields present in the request are changed."""
        values = {field: value for field, value in data.model_dump(exclude_unset=True).items() if value is not None}
        row = self.rows.update(user_id, job_id, **values)
        return RoutineJob.model_validate(row)

    def delete_job(self, user_id: str, job_id: str) -> None:
        """Delete a job and its completion log. Payout records keep their amounts."""
        self.rows.delete(user_id, job_id)

    def toggle_active(self, user_id: str, job_id: str) -> RoutineJob:
        """Pause or resume a job."""
        row = self.rows.get(user_id, job_id)
        row = self.rows.update(user_id, job_id, active=not row.active)
        return RoutineJob.model_validate(row)

    def progress(self, user_id: str, job_id: str) -> AccrualProgress:
        """How many occurrences are logged towards the next payout."""
        job = self.get_job(user_id, job_id)
        required = required_completions(job.frequency, job.days_of_week)
        completed = len(job.completions)
        return AccrualProgress(
            job_id=job.id,
            completed=completed,
            required=required,
            remaining=max(required - completed, 0),
            last_payout_date=job.last_payout_date,
        )
