"""Tests for the payout reconciler: idempotency, thresholds, isolation and failure handling."""

import datetime as dt
from collections.abc import Callable

import pytest
from sqlalchemy.orm import Session

from app.core.db import RoutineJobCompletionRow, RoutineJobRow, SessionLocal
from app.core.errors import ReconcileFetchError
from app.core.models import RoutineJob
from app.core.schedule import CalendarName
from app.core.settings import Settings
from app.services.ledger import LedgerStore, Occurrence
from app.workers.reconciler import Reconciler, main

FIRST_OF_MARCH = dt.date(2025, 3, 1)  # a Saturday
WEEKLY_DUE_DAYS = [dt.date(2025, 3, 1), dt.date(2025, 3, 3), dt.date(2025, 3, 8), dt.date(2025, 3, 10)]


class FailingStore(LedgerStore):
    """Ledger store whose writes for some jobs fail after doing all their work, before commit."""

    def __init__(self, failing_ids: set[str]) -> None:
        """Initialize with the ids of the jobs whose writes should fail."""
        super().__init__(SessionLocal)
        self.failing_ids = failing_ids

    def _record(self, session: Session, job_id: str, stamp: dt.date, calendar: CalendarName) -> Occurrence:
        occurrence = super()._record(session, job_id, stamp, calendar)
        if job_id in self.failing_ids:
            msg = "write rejected"
            raise RuntimeError(msg)
        return occurrence


class RacingStore(LedgerStore):
    """Ledger store whose first check misses a completion that another run committed meanwhile."""

    def __init__(self) -> None:
        """Initialize on the test database."""
        super().__init__(SessionLocal)
        self.raced = False

    def _logged_before(self, session: Session, row: RoutineJobRow, stamp: dt.date) -> bool:
        if not self.raced:
            self.raced = True
            return False
        return super()._logged_before(session, row, stamp)


class BrokenListStore(LedgerStore):
    """Ledger store that cannot list jobs."""

    def list_active_jobs(self) -> list[RoutineJob]:
        """Fail like an unreachable database."""
        msg = "database unavailable"
        raise ConnectionError(msg)


def load(job_id: str) -> RoutineJob:
    """Read a job snapshot straight from the database."""
    with SessionLocal() as session:
        return RoutineJob.model_validate(session.get(RoutineJobRow, job_id))


def outcome_for(report: object, job_id: str) -> object:
    """Pick one job's outcome from a report."""
    return next(o for o in report.outcomes if o.job_id == job_id)


def test_weekly_job_pays_out_after_four_occurrences(
    reconciler: Reconciler, make_job: Callable[..., str], payouts: Callable
) -> None:
    """A saturday/monday weekly job pays its earnings on the fourth due day and resets."""
    job_id = make_job(frequency="weekly", days_of_week=["saturday", "monday"], earnings=100000.0)
    statuses = []
    day = WEEKLY_DUE_DAYS[0]
    while day <= WEEKLY_DUE_DAYS[-1]:
        statuses.append(outcome_for(reconciler.run(day), job_id).status)
        day += dt.timedelta(days=1)

    if statuses.count("accrued") != 3 or statuses.count("paid_out") != 1 or statuses[-1] != "paid_out":
        msg = f"Unexpected statuses: {statuses}"
        raise AssertionError(msg)
    records = payouts(job_id)
    if len(records) != 1 or records[0].amount != 100000.0 or records[0].type != "income":
        msg = f"Expected one income record of 100000, got {records}"
        raise AssertionError(msg)
    if records[0].date != WEEKLY_DUE_DAYS[-1]:
        msg = f"Expected the record dated on the threshold day, got {records[0].date}"
        raise AssertionError(msg)
    job = load(job_id)
    if job.completions != [] or job.last_payout_date != WEEKLY_DUE_DAYS[-1]:
        msg = f"Expected a reset log, got {job.completions} / {job.last_payout_date}"
        raise AssertionError(msg)


def test_daily_job_pays_out_on_day_thirty(
    reconciler: Reconciler, make_job: Callable[..., str], payouts: Callable
) -> None:
    """Thirty consecutive daily runs give exactly one payout, on day thirty."""
    job_id = make_job(frequency="daily", earnings=10000.0)
    start = dt.date(2025, 1, 1)
    for offset in range(29):
        reconciler.run(start + dt.timedelta(days=offset))
    if payouts(job_id):
        msg = "Paid out before day thirty"
        raise AssertionError(msg)
    if len(load(job_id).completions) != 29:
        msg = f"Expected 29 completions, got {len(load(job_id).completions)}"
        raise AssertionError(msg)

    day_thirty = start + dt.timedelta(days=29)
    report = reconciler.run(day_thirty)
    if outcome_for(report, job_id).status != "paid_out" or len(payouts(job_id)) != 1:
        msg = "Expected exactly one payout on day thirty"
        raise AssertionError(msg)
    if load(job_id).completions != []:
        msg = "Expected the log to reset on day thirty"
        raise AssertionError(msg)

    day_thirty_one = day_thirty + dt.timedelta(days=1)
    report = reconciler.run(day_thirty_one)
    if outcome_for(report, job_id).status != "accrued" or load(job_id).completions != [day_thirty_one]:
        msg = "Expected day thirty-one to start a new cycle"
        raise AssertionError(msg)
    if len(payouts(job_id)) != 1:
        msg = "Unexpected second payout on day thirty-one"
        raise AssertionError(msg)


def test_monthly_job_pays_out_on_first_of_month(
    reconciler: Reconciler, make_job: Callable[..., str], payouts: Callable
) -> None:
    """A monthly job with an empty log pays out immediately on the first of the month."""
    job_id = make_job(frequency="monthly", earnings=500000.0)
    outcome = outcome_for(reconciler.run(FIRST_OF_MARCH), job_id)
    if outcome.status != "paid_out" or outcome.financial_record_id is None:
        msg = f"Expected paid_out, got {outcome}"
        raise AssertionError(msg)
    records = payouts(job_id)
    if len(records) != 1 or records[0].amount != 500000.0 or records[0].type != "income":
        msg = f"Expected one income record of 500000, got {records}"
        raise AssertionError(msg)
    if records[0].id != outcome.financial_record_id:
        msg = f"Record {records[0].id} does not match outcome {outcome.financial_record_id}"
        raise AssertionError(msg)
    if records[0].description != "دستمزد ماهانه: تدریس":
        msg = f"Unexpected description {records[0].description}"
        raise AssertionError(msg)
    job = load(job_id)
    if job.completions != [] or job.last_payout_date != FIRST_OF_MARCH:
        msg = f"Expected reset with last payout {FIRST_OF_MARCH}, got {job.completions} / {job.last_payout_date}"
        raise AssertionError(msg)


def test_already_logged_day_is_skipped(
    reconciler: Reconciler, make_job: Callable[..., str], add_completion: Callable, payouts: Callable
) -> None:
    """A daily job whose log already holds today is left untouched."""
    job_id = make_job(frequency="daily", earnings=10000.0)
    add_completion(job_id, FIRST_OF_MARCH)
    outcome = outcome_for(reconciler.run(FIRST_OF_MARCH), job_id)
    if outcome.status != "skipped" or outcome.reason != "already_logged":
        msg = f"Expected skipped (already_logged), got {outcome}"
        raise AssertionError(msg)
    if load(job_id).completions != [FIRST_OF_MARCH] or payouts(job_id):
        msg = "Job was mutated"
        raise AssertionError(msg)


@pytest.mark.parametrize("frequency", ["daily", "monthly"])
def test_running_twice_on_the_same_day_is_idempotent(
    reconciler: Reconciler, make_job: Callable[..., str], payouts: Callable, frequency: str
) -> None:
    """A second run on the same day changes nothing, after an accrual or after a payout."""
    job_id = make_job(frequency=frequency)
    reconciler.run(FIRST_OF_MARCH)
    after_first = (load(job_id), len(payouts(job_id)))
    second = outcome_for(reconciler.run(FIRST_OF_MARCH), job_id)
    after_second = (load(job_id), len(payouts(job_id)))

    if second.status != "skipped" or second.reason != "already_logged":
        msg = f"Expected the second run to skip, got {second}"
        raise AssertionError(msg)
    first_job, first_count = after_first
    second_job, second_count = after_second
    if (first_job.completions, first_job.last_payout_date, first_count) != (
        second_job.completions,
        second_job.last_payout_date,
        second_count,
    ):
        msg = "Second run changed the ledger"
        raise AssertionError(msg)


def test_stale_snapshot_cannot_log_twice(
    reconciler: Reconciler, make_job: Callable[..., str], store: LedgerStore
) -> None:
    """An overlapping run holding a snapshot from before the first run's write does not log the day again."""
    job_id = make_job(frequency="daily")
    stale = store.list_active_jobs()
    reconciler.run(FIRST_OF_MARCH)
    outcome = reconciler.process_job(stale[0], FIRST_OF_MARCH)
    if outcome.status != "skipped" or outcome.reason != "already_logged":
        msg = f"Expected skipped (already_logged), got {outcome}"
        raise AssertionError(msg)
    with SessionLocal() as session:
        rows = session.query(RoutineJobCompletionRow).filter_by(routine_job_id=job_id).all()
    if len(rows) != 1:
        msg = f"Expected one completion row, got {len(rows)}"
        raise AssertionError(msg)


def test_rerun_of_a_paid_out_day_is_skipped(
    reconciler: Reconciler, make_job: Callable[..., str], payouts: Callable
) -> None:
    """Re-running a day whose completion was consumed by an earlier payout skips instead of failing."""
    job_id = make_job(frequency="weekly", days_of_week=["saturday", "monday"])
    for day in WEEKLY_DUE_DAYS:
        reconciler.run(day)
    report = reconciler.run(WEEKLY_DUE_DAYS[2])
    outcome = outcome_for(report, job_id)
    if outcome.status != "skipped" or outcome.reason != "already_logged" or report.failed:
        msg = f"Expected skipped (already_logged), got {outcome}"
        raise AssertionError(msg)
    if len(payouts(job_id)) != 1 or load(job_id).completions:
        msg = "Re-run changed the paid out cycle"
        raise AssertionError(msg)


def test_overlapping_insert_is_reported_as_already_logged(
    make_job: Callable[..., str], add_completion: Callable[[str, dt.date], None]
) -> None:
    """A unique-constraint hit from a run that committed the same day first is not a failure."""
    job_id = make_job(frequency="daily")
    add_completion(job_id, FIRST_OF_MARCH)
    store = RacingStore()
    result = store.record_occurrence(job_id, FIRST_OF_MARCH)
    if not store.raced or result.status != "already_logged" or result.completed != 1:
        msg = f"Expected already_logged after the constraint fired, got {result}"
        raise AssertionError(msg)
    with SessionLocal() as session:
        rows = session.query(RoutineJobCompletionRow).filter_by(routine_job_id=job_id).all()
    if len(rows) != 1:
        msg = f"Expected one completion row, got {len(rows)}"
        raise AssertionError(msg)


def test_inactive_jobs_are_untouched(
    reconciler: Reconciler, make_job: Callable[..., str], payouts: Callable
) -> None:
    """Inactive jobs never accrue or pay out, and are not even listed."""
    job_id = make_job(frequency="monthly", active=False)
    for offset in range(31):
        report = reconciler.run(FIRST_OF_MARCH + dt.timedelta(days=offset))
        if any(o.job_id == job_id for o in report.outcomes):
            msg = "Inactive job was processed"
            raise AssertionError(msg)
    if load(job_id).completions or payouts(job_id):
        msg = "Inactive job was mutated"
        raise AssertionError(msg)


def test_not_due_and_misconfigured_jobs_are_skipped(reconciler: Reconciler, make_job: Callable[..., str]) -> None:
    """Jobs not due today, including weekly jobs without weekdays, are skipped as not due."""
    sunday_only = make_job(frequency="weekly", days_of_week=["sunday"])
    no_days = make_job(frequency="custom", days_of_week=[])
    report = reconciler.run(FIRST_OF_MARCH)
    for job_id in (sunday_only, no_days):
        outcome = outcome_for(report, job_id)
        if outcome.status != "skipped" or outcome.reason != "not_due":
            msg = f"Expected skipped (not_due), got {outcome}"
            raise AssertionError(msg)


def test_write_failure_is_isolated(make_job: Callable[..., str], payouts: Callable, settings: Settings) -> None:
    """A failed write leaves that job as it was and does not stop other jobs."""
    job_a = make_job(name="A", frequency="monthly")
    job_b = make_job(name="B", frequency="monthly")
    job_c = make_job(name="C", frequency="daily")
    reconciler = Reconciler(FailingStore({job_a}), settings)

    report = reconciler.run(FIRST_OF_MARCH)

    failures = report.failures()
    if [f.job_id for f in failures] != [job_a] or "write rejected" not in (failures[0].error or ""):
        msg = f"Expected only job A to fail, got {failures}"
        raise AssertionError(msg)
    if payouts(job_a) or load(job_a).completions or load(job_a).last_payout_date is not None:
        msg = "Failed job A was partially written"
        raise AssertionError(msg)
    if outcome_for(report, job_b).status != "paid_out" or len(payouts(job_b)) != 1:
        msg = "Job B did not pay out"
        raise AssertionError(msg)
    if outcome_for(report, job_c).status != "accrued":
        msg = "Job C did not accrue"
        raise AssertionError(msg)

    retry = Reconciler(LedgerStore(SessionLocal), settings).run(FIRST_OF_MARCH)
    if outcome_for(retry, job_a).status != "paid_out" or outcome_for(retry, job_b).status != "skipped":
        msg = "Retry should pay job A once and leave job B alone"
        raise AssertionError(msg)
    if len(payouts(job_a)) != 1 or len(payouts(job_b)) != 1:
        msg = "Retry duplicated a payout"
        raise AssertionError(msg)


def test_fetch_failure_aborts_the_run(settings: Settings) -> None:
    """Failing to list active jobs aborts the whole run."""
    reconciler = Reconciler(BrokenListStore(SessionLocal), settings)
    with pytest.raises(ReconcileFetchError, match="database unavailable"):
        reconciler.run(FIRST_OF_MARCH)


def test_report_counts(reconciler: Reconciler, make_job: Callable[..., str]) -> None:
    """The report totals each outcome kind."""
    make_job(frequency="daily")
    make_job(frequency="monthly")
    make_job(frequency="weekly", days_of_week=["friday"])
    report = reconciler.run(FIRST_OF_MARCH)
    counts = (report.accrued, report.paid_out, report.skipped, report.failed)
    if counts != (1, 1, 1, 0):
        msg = f"Unexpected counts {counts}"
        raise AssertionError(msg)
    if report.run_date != FIRST_OF_MARCH:
        msg = f"Unexpected run date {report.run_date}"
        raise AssertionError(msg)


def test_run_defaults_to_local_today(reconciler: Reconciler, make_job: Callable[..., str]) -> None:
    """Without an explicit date the run uses today in the configured time zone."""
    make_job(frequency="daily")
    report = reconciler.run()
    if report.run_date != reconciler.today():
        msg = f"Expected {reconciler.today()}, got {report.run_date}"
        raise AssertionError(msg)


def test_command_line_entry_point(make_job: Callable[..., str], capsys: pytest.CaptureFixture[str]) -> None:
    """The cron entry point prints the JSON report and exits 0 when nothing failed."""
    job_id = make_job(frequency="monthly")
    exit_code = main(["--date", "2025-03-01"])
    output = capsys.readouterr().out
    if exit_code != 0:
        msg = f"Expected exit code 0, got {exit_code}"
        raise AssertionError(msg)
    if job_id not in output or '"paid_out": 1' not in output:
        msg = f"Unexpected report output: {output}"
        raise AssertionError(msg)
