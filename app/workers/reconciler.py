"""Daily payout reconciliation for routine jobs.

Invoked by an external scheduler, either through ``POST /reconcile`` or as ``python -m app.workers.reconciler``.
Each run fixes one canonical date, walks every active routine job and either skips it, logs today's occurrence,
or pays it out. A job that fails to write is reported and left for the next run; the other jobs carry on.
"""

import argparse
import datetime as dt
import json
import sys

from app.core.errors import ReconcileFetchError
from app.core.models import JobOutcome, ReconcileReport, RoutineJob
from app.core.schedule import CalendarName, already_logged, is_due, required_completions
from app.core.settings import Settings, get_settings
from app.core.utils import get_logger, local_today
from app.services.ledger import LedgerStore

logger = get_logger("routine-ledger.reconciler")


class Reconciler:
    """Evaluates active routine jobs once per run and applies accrual or payout."""

    def __init__(self, store: LedgerStore | None = None, settings: Settings | None = None) -> None:
        """Initialize the reconciler with a ledger store and settings."""
        self.settings = settings or get_settings()
        self.store = store or LedgerStore()
        self.calendar: CalendarName = self.settings.calendar

    def today(self) -> dt.date:
        """The canonical run date in the configured time zone."""
        return local_today(self.settings.timezone)

    def run(self, today: dt.date | None = None) -> ReconcileReport:
        """Reconcile every active routine job for ``today`` and return the per-job report."""
        run_date = today or self.today()
        logger.info(f"Starting reconciliation for {run_date.isoformat()} (calendar={self.calendar})")
        try:
            jobs = self.store.list_active_jobs()
        except Exception as exc:
            logger.exception("Failed to fetch active routine jobs")
            msg = f"Could not list active routine jobs: {exc}"
            raise ReconcileFetchError(msg) from exc
        logger.info(f"Found {len(jobs)} active routine jobs")

        report = ReconcileReport(run_date=run_date)
        for job in jobs:
            report.outcomes.append(self.process_job(job, run_date))
        logger.info(
            f"Reconciliation {run_date.isoformat()} done: accrued={report.accrued} paid_out={report.paid_out} "
            f"skipped={report.skipped} failed={report.failed}"
        )
        return report

    def process_job(self, job: RoutineJob, today: dt.date) -> JobOutcome:
        """Decide and apply the outcome for a single job."""
        required = required_completions(job.frequency, job.days_of_week)
        outcome = JobOutcome(
            job_id=job.id,
            job_name=job.name,
            status="skipped",
            completed=len(job.completions),
            required=required,
        )
        if not job.active:
            outcome.reason = "inactive"
            return outcome
        if not is_due(job, today, self.calendar):
            outcome.reason = "not_due"
            return outcome
        if job.last_payout_date == today or already_logged(job.completions, today):
            logger.info(f"Job {job.name} ({job.id}): {today.isoformat()} already logged, skipping")
            outcome.reason = "already_logged"
            return outcome

        try:
            result = self.store.record_occurrence(job.id, today, self.calendar)
        except Exception as exc:
            logger.exception(f"Job {job.name} ({job.id}): write failed, left for the next run")
            outcome.status = "failed"
            outcome.error = str(exc)
            return outcome

        outcome.completed = result.completed
        outcome.required = result.required or required
        if result.status == "accrued":
            outcome.status = "accrued"
            logger.info(f"Job {job.name} ({job.id}): logged {result.completed}/{outcome.required}")
        elif result.status == "paid_out":
            outcome.status = "paid_out"
            outcome.financial_record_id = result.financial_record_id
            logger.info(f"Job {job.name} ({job.id}): threshold reached, paid {job.earnings}")
        else:
            outcome.reason = result.status
        return outcome


def run_reconciliation(today: dt.date | None = None, settings: Settings | None = None) -> ReconcileReport:
    """Top-level function to run one reconciliation pass (for the scheduler endpoint and the CLI)."""
    reconciler = Reconciler(settings=settings)
    return reconciler.run(today)


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point for cron-style invocation."""
    parser = argparse.ArgumentParser(description="Reconcile routine job payouts for one day.")
    parser.add_argument("--date", type=dt.date.fromisoformat, default=None, help="run date (YYYY-MM-DD)")
    args = parser.parse_args(argv)
    try:
        report = run_reconciliation(args.date)
    except ReconcileFetchError as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        return 1
    print(report.model_dump_json(indent=2))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
