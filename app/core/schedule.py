"""Due-date, idempotency and threshold rules for routine jobs.

Everything here is pure: the functions take a job snapshot and a date and never touch storage, so the
reconciler and the read-only progress endpoint share exactly the same rules.
"""

import datetime as dt
from collections.abc import Iterable
from typing import Literal

from app.core import jalali
from app.core.models import Frequency, RoutineJob, Weekday

CalendarName = Literal["gregorian", "jalali"]

# Occurrences per payout cycle. Calendar approximations of one month, kept as policy.
DAILY_THRESHOLD = 30
WEEKLY_THRESHOLD = 4
MONTHLY_THRESHOLD = 1
WEEKS_PER_CYCLE = 4

# Indexed by date.weekday() (Monday == 0).
_PY_WEEKDAYS = (
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
    Weekday.SUNDAY,
)


def weekday_tag(day: dt.date) -> Weekday:
    """Return the weekday tag of a date."""
    return _PY_WEEKDAYS[day.weekday()]


def is_first_of_month(day: dt.date, calendar: CalendarName = "gregorian") -> bool:
    """Return True if ``day`` opens a month in the given calendar."""
    if calendar == "jalali":
        return jalali.is_first_of_month(day)
    return day.day == 1


def is_due(job: RoutineJob, today: dt.date, calendar: CalendarName = "gregorian") -> bool:
    """Decide whether ``today`` counts as an occurrence of ``job``.

    Weekly and custom jobs without any weekday are treated as misconfigured and are never due.
    """
    if not job.active:
        return False
    if job.frequency == Frequency.DAILY:
        return True
    if job.frequency in (Frequency.WEEKLY, Frequency.CUSTOM):
        return weekday_tag(today) in job.days_of_week
    if job.frequency == Frequency.MONTHLY:
        return is_first_of_month(today, calendar)
    return False


def already_logged(completions: Iterable[dt.date | str], stamp: dt.date) -> bool:
    """Return True if ``stamp`` is already present in the completion log (exact date match)."""
    iso = stamp.isoformat()
    return any((c.isoformat() if isinstance(c, dt.date) else str(c)) == iso for c in completions)


def required_completions(frequency: Frequency, days_of_week: Iterable[Weekday] = ()) -> int:
    """Number of occurrences that make up one payout cycle."""
    if frequency == Frequency.DAILY:
        return DAILY_THRESHOLD
    if frequency == Frequency.WEEKLY:
        return WEEKLY_THRESHOLD
    if frequency == Frequency.MONTHLY:
        return MONTHLY_THRESHOLD
    return len(set(days_of_week)) * WEEKS_PER_CYCLE


def payout_description(frequency: Frequency, name: str) -> str:
    """Persian ledger description for a routine job payout."""
    labels = {
        Frequency.DAILY: "روزانه",
        Frequency.WEEKLY: "هفتگی",
        Frequency.MONTHLY: "ماهانه",
        Frequency.CUSTOM: "ماهانه",
    }
    return f"دستمزد {labels[Frequency(frequency)]}: {name}"
