"""Persian (Jalali) calendar helpers built on jdatetime."""

import datetime as dt

import jdatetime

MONTH_NAMES = [
    "فروردین",
    "اردیبهشت",
    "خرداد",
    "تیر",
    "مرداد",
    "شهریور",
    "مهر",
    "آبان",
    "آذر",
    "دی",
    "بهمن",
    "اسفند",
]

PERSIAN_DIGITS = "۰۱۲۳۴۵۶۷۸۹"
_TO_PERSIAN = str.maketrans("0123456789", PERSIAN_DIGITS)


def to_jalali(value: dt.date) -> jdatetime.date:
    """Convert a Gregorian date to its Jalali equivalent."""
    return jdatetime.date.fromgregorian(date=value)


def from_jalali(year: int, month: int, day: int) -> dt.date:
    """Convert a Jalali year/month/day to a Gregorian date."""
    return jdatetime.date(year, month, day).togregorian()


def format_jalali(value: dt.date) -> str:
    """Format a date as ``YYYY/MM/DD`` in the Jalali calendar."""
    j = to_jalali(value)
    return f"{j.year:04d}/{j.month:02d}/{j.day:02d}"


def month_label(value: dt.date) -> str:
    """Name the Jalali month containing ``value``, e.g. ``اسفند ۱۴۰۳``."""
    j = to_jalali(value)
    return f"{MONTH_NAMES[j.month - 1]} {to_persian_digits(j.year)}"


def is_first_of_month(value: dt.date) -> bool:
    """Return True if the date is the first day of a Jalali month."""
    return to_jalali(value).day == 1


def start_of_month(value: dt.date) -> dt.date:
    """Return the Gregorian date of the first day of the Jalali month containing ``value``."""
    j = to_jalali(value)
    return from_jalali(j.year, j.month, 1)


def end_of_month(value: dt.date) -> dt.date:
    """Return the Gregorian date of the last day of the Jalali month containing ``value``."""
    j = to_jalali(value)
    if j.month == 12:
        next_start = from_jalali(j.year + 1, 1, 1)
    else:
        next_start = from_jalali(j.year, j.month + 1, 1)
    return next_start - dt.timedelta(days=1)


def to_persian_digits(text: str | int) -> str:
    """Replace ASCII digits with Persian digits."""
    return str(text).translate(_TO_PERSIAN)
