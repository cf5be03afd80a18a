"""Pydantic models for the Routine Ledger.

This module defines the request and response models used throughout the application: routine jobs and their
accrual progress, financial records, habits, tasks, goals, and the per-run report produced by the payout reconciler.
"""

import datetime as dt
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field, field_validator

from app.core.jalali import format_jalali


class Frequency(StrEnum):
    """How often a routine job occurs."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class Weekday(StrEnum):
    """Weekday tags, in Persian week order."""

    SATURDAY = "saturday"
    SUNDAY = "sunday"
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"


# JavaScript Date.getDay() numbering, as stored by older clients.
JS_WEEKDAYS = (
    Weekday.SUNDAY,
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
    Weekday.SATURDAY,
)


class LifeCategory(StrEnum):
    """Wheel-of-life categories shared by jobs, records, habits, tasks and goals."""

    CAREER = "career"
    FINANCE = "finance"
    HEALTH = "health"
    FAMILY = "family"
    PERSONAL = "personal"
    SPIRITUAL = "spiritual"
    SOCIAL = "social"
    EDUCATION = "education"


class RecordType(StrEnum):
    """Direction of a financial record."""

    INCOME = "income"
    EXPENSE = "expense"


class TaskStatus(StrEnum):
    """Lifecycle of a task."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    POSTPONED = "postponed"
    DONE = "done"


class FinancialType(StrEnum):
    """Monetary consequence of completing a task."""

    SPEND = "spend"
    EARN_ONCE = "earn_once"
    EARN_ROUTINE = "earn_routine"


class GoalType(StrEnum):
    """Horizon of a goal."""

    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    FINANCIAL = "financial"


# --- Routine jobs ---


def _normalize_days(value: object) -> object:
    if value is None:
        return []
    if not isinstance(value, list | tuple | set):
        return value
    days: list[object] = []
    for item in value:
        day = JS_WEEKDAYS[item] if isinstance(item, int) and 0 <= item < len(JS_WEEKDAYS) else item
        if day not in days:
            days.append(day)
    return days


WeekdayList = Annotated[list[Weekday], BeforeValidator(_normalize_days)]


class RoutineJobCreate(BaseModel):
    """Fields an owner supplies when creating a routine job."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    earnings: float = Field(gt=0)
    frequency: Frequency
    days_of_week: WeekdayList = Field(default_factory=list)
    active: bool = True
    category: LifeCategory = LifeCategory.CAREER


class RoutineJobUpdate(BaseModel):
    """Owner-editable fields. Accrual state (completions, last payout) is not among them."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    earnings: float | None = Field(default=None, gt=0)
    frequency: Frequency | None = None
    days_of_week: WeekdayList | None = None
    active: bool | None = None
    category: LifeCategory | None = None


class RoutineJob(BaseModel):
    """A routine job as stored, including its open completion log."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    earnings: float
    frequency: Frequency
    days_of_week: WeekdayList = Field(default_factory=list)
    active: bool = True
    category: LifeCategory = LifeCategory.CAREER
    completions: list[dt.date] = Field(default_factory=list)
    last_payout_date: dt.date | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class AccrualProgress(BaseModel):
    """Read-only view of how far a routine job is into its payout cycle."""

    job_id: str
    completed: int
    required: int
    remaining: int
    last_payout_date: dt.date | None = None


# --- Financial records ---


class FinancialRecordCreate(BaseModel):
    """A manual transaction entered by the owner."""

    model_config = ConfigDict(extra="forbid")

    type: RecordType
    amount: float = Field(gt=0)
    description: str = ""
    category: LifeCategory = LifeCategory.FINANCE
    date: dt.date | None = None


class FinancialRecordUpdate(BaseModel):
    """Editable fields of a manual transaction."""

    model_config = ConfigDict(extra="forbid")

    type: RecordType | None = None
    amount: float | None = Field(default=None, gt=0)
    description: str | None = None
    category: LifeCategory | None = None
    date: dt.date | None = None


class FinancialRecord(BaseModel):
    """An income or expense ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: RecordType
    amount: float
    description: str
    category: LifeCategory
    date: dt.date
    task_id: str | None = None
    routine_job_id: str | None = None
    is_payout: bool = False
    created_at: dt.datetime | None = None

    @computed_field
    @property
    def jalali_date(self) -> str:
        """The record date in the Persian calendar."""
        return format_jalali(self.date)


class FinancialSummary(BaseModel):
    """Income and expense totals over a set of records."""

    month: str | None = None
    income: float = 0.0
    expense: float = 0.0
    count: int = 0

    @computed_field
    @property
    def balance(self) -> float:
        """Income minus expense."""
        return self.income - self.expense


# --- Habits ---


class HabitCompletion(BaseModel):
    """One day's entry in a habit's completion list."""

    date: dt.date
    completed: bool = True


class HabitCreate(BaseModel):
    """Fields an owner supplies when creating a habit."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str | None = None
    category: LifeCategory = LifeCategory.HEALTH
    target_frequency: Frequency = Frequency.DAILY


class HabitUpdate(BaseModel):
    """Editable habit fields."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: LifeCategory | None = None
    target_frequency: Frequency | None = None
    completions: list[HabitCompletion] | None = None


class HabitToggle(BaseModel):
    """Request body for flipping a habit's completion on a day."""

    date: dt.date


class Habit(BaseModel):
    """A habit and its completion history."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    description: str | None = None
    category: LifeCategory
    target_frequency: Frequency
    completions: list[HabitCompletion] = Field(default_factory=list)
    created_at: dt.datetime | None = None

    @field_validator("completions", mode="before")
    @classmethod
    def _completions(cls, value: object) -> object:
        return value if isinstance(value, list) else []


# --- Tasks ---


class TaskCreate(BaseModel):
    """Fields an owner supplies when creating a task."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: str | None = None
    category: LifeCategory = LifeCategory.PERSONAL
    status: TaskStatus = TaskStatus.NOT_STARTED
    scheduled_date: dt.date | None = None
    financial_type: FinancialType | None = None
    amount: float | None = Field(default=None, ge=0)
    routine_job_id: str | None = None
    goal_id: str | None = None


class TaskUpdate(BaseModel):
    """Editable task fields."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: LifeCategory | None = None
    status: TaskStatus | None = None
    scheduled_date: dt.date | None = None
    financial_type: FinancialType | None = None
    amount: float | None = Field(default=None, ge=0)
    routine_job_id: str | None = None
    goal_id: str | None = None


class Task(BaseModel):
    """A planner task."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str | None = None
    category: LifeCategory
    status: TaskStatus
    scheduled_date: dt.date | None = None
    financial_type: FinancialType | None = None
    amount: float | None = None
    routine_job_id: str | None = None
    goal_id: str | None = None
    completed_at: dt.datetime | None = None
    created_at: dt.datetime | None = None


class TaskCompletion(BaseModel):
    """Result of completing a task: the updated task and the reward record, if any."""

    task: Task
    financial_record: FinancialRecord | None = None


# --- Goals ---


class GoalCreate(BaseModel):
    """Fields an owner supplies when creating a goal."""

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: str | None = None
    category: LifeCategory = LifeCategory.PERSONAL
    type: GoalType = GoalType.ANNUAL
    deadline: dt.date
    target_amount: float | None = Field(default=None, ge=0)
    current_amount: float | None = Field(default=None, ge=0)
    completed: bool = False


class GoalUpdate(BaseModel):
    """Editable goal fields."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: LifeCategory | None = None
    type: GoalType | None = None
    deadline: dt.date | None = None
    target_amount: float | None = Field(default=None, ge=0)
    current_amount: float | None = Field(default=None, ge=0)
    completed: bool | None = None


class Goal(BaseModel):
    """A planner goal."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str | None = None
    category: LifeCategory
    type: GoalType
    deadline: dt.date
    target_amount: float | None = None
    current_amount: float | None = None
    completed: bool = False
    created_at: dt.datetime | None = None


# --- Reconciler ---

OutcomeStatus = Literal["skipped", "accrued", "paid_out", "failed"]


class JobOutcome(BaseModel):
    """What the reconciler did with one routine job in one run."""

    job_id: str
    job_name: str
    status: OutcomeStatus
    reason: str | None = None
    completed: int = 0
    required: int = 0
    financial_record_id: str | None = None
    error: str | None = None


class ReconcileReport(BaseModel):
    """Per-job outcomes of a reconciliation run."""

    run_date: dt.date
    outcomes: list[JobOutcome] = Field(default_factory=list)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @computed_field
    @property
    def accrued(self) -> int:
        """Number of jobs that logged a completion without paying out."""
        return self._count("accrued")

    @computed_field
    @property
    def paid_out(self) -> int:
        """Number of jobs that produced an income record."""
        return self._count("paid_out")

    @computed_field
    @property
    def skipped(self) -> int:
        """Number of jobs left untouched."""
        return self._count("skipped")

    @computed_field
    @property
    def failed(self) -> int:
        """Number of jobs whose write failed."""
        return self._count("failed")

    def failures(self) -> list[JobOutcome]:
        """Return only the failed outcomes."""
        return [outcome for outcome in self.outcomes if outcome.status == "failed"]
