"""Habit, task and goal services.

Habits carry user-mutable completion counters with no monetary effect. Completing a task may record a one-off
income or expense.
"""

import datetime as dt

from sqlalchemy.orm import Session

from app.core.db import FinancialRecordRow, GoalRow, HabitRow, RoutineJobRow, TaskRow
from app.core.models import (
    FinancialRecord,
    FinancialType,
    Goal,
    GoalCreate,
    GoalUpdate,
    Habit,
    HabitCompletion,
    HabitCreate,
    HabitUpdate,
    RecordType,
    Task,
    TaskCompletion,
    TaskCreate,
    TaskStatus,
    TaskUpdate,
)
from app.core.utils import get_logger, utcnow
from app.services.repository import OwnerScopedRepository

logger = get_logger("routine-ledger.planner")


class HabitService:
    """Owner-scoped habits and their completion toggles."""

    def __init__(self, session: Session) -> None:
        """Initialize the service with a SQLAlchemy session."""
        self.rows = OwnerScopedRepository(session, HabitRow, "habit")

    def list_habits(self, user_id: str) -> list[Habit]:
        """Return the owner's habits, newest first."""
        return [Habit.model_validate(row) for row in self.rows.list_rows(user_id, HabitRow.created_at.desc())]

    def get_habit(self, user_id: str, habit_id: str) -> Habit:
        """Return one habit."""
        return Habit.model_validate(self.rows.get(user_id, habit_id))

    def create_habit(self, user_id: str, data: HabitCreate) -> Habit:
        """Create a habit with no completions."""
        return Habit.model_validate(self.rows.create(user_id, completions=[], **data.model_dump()))

    def update_habit(self, user_id: str, habit_id: str, data: HabitUpdate) -> Habit:
        """Apply owner edits, including a full replacement of the completion list."""
        values = data.model_dump(exclude_unset=True)
        if data.completions is not None:
            values["completions"] = [c.model_dump(mode="json") for c in data.completions]
        return Habit.model_validate(self.rows.update(user_id, habit_id, **values))

    def delete_habit(self, user_id: str, habit_id: str) -> None:
        """Delete a habit."""
        self.rows.delete(user_id, habit_id)

    def toggle_completion(self, user_id: str, habit_id: str, day: dt.date) -> Habit:
        """Flip the completion flag for ``day``, adding a completed entry if the day has none."""
        habit = self.get_habit(user_id, habit_id)
        completions = list(habit.completions)
        for index, entry in enumerate(completions):
            if entry.date == day:
                completions[index] = HabitCompletion(date=day, completed=not entry.completed)
                break
        else:
            completions.append(HabitCompletion(date=day, completed=True))
        payload = [c.model_dump(mode="json") for c in completions]
        return Habit.model_validate(self.rows.update(user_id, habit_id, completions=payload))


class TaskService:
    """Owner-scoped tasks, including completion rewards."""

    def __init__(self, session: Session) -> None:
        """Initialize the service with a SQLAlchemy session."""
        self.session = session
        self.rows = OwnerScopedRepository(session, TaskRow, "task")

    def list_tasks(self, user_id: str, scheduled_date: dt.date | None = None) -> list[Task]:
        """Return the owner's tasks, optionally only those scheduled on one day."""
        filters = {"scheduled_date": scheduled_date} if scheduled_date else {}
        rows = self.rows.list_rows(user_id, TaskRow.created_at.desc(), **filters)
        return [Task.model_validate(row) for row in rows]

    def get_task(self, user_id: str, task_id: str) -> Task:
        """Return one task."""
        return Task.model_validate(self.rows.get(user_id, task_id))

    def create_task(self, user_id: str, data: TaskCreate) -> Task:
        """Create a task."""
        return Task.model_validate(self.rows.create(user_id, **data.model_dump()))

    def update_task(self, user_id: str, task_id: str, data: TaskUpdate) -> Task:
        """Apply owner edits."""
        return Task.model_validate(self.rows.update(user_id, task_id, **data.model_dump(exclude_unset=True)))

    def delete_task(self, user_id: str, task_id: str) -> None:
        """Delete a task."""
        self.rows.delete(user_id, task_id)

    def complete_task(self, user_id: str, task_id: str, today: dt.date) -> TaskCompletion:
        """Mark a task done and record its financial consequence, if it has one.

        ``spend`` tasks record an expense, earning tasks an income. Routine earning tasks take the linked job's
        earnings; others use the task's own amount. Nothing is recorded for a zero amount.
        """
        row = self.rows.get(user_id, task_id)
        if row.status == TaskStatus.DONE:
            return TaskCompletion(task=Task.model_validate(row))

        row.status = TaskStatus.DONE.value
        row.completed_at = utcnow()
        record = None
        if row.financial_type:
            amount = self._reward_amount(row)
            if amount > 0:
                record_type = RecordType.EXPENSE if row.financial_type == FinancialType.SPEND else RecordType.INCOME
                record = FinancialRecordRow(
                    user_id=user_id,
                    type=record_type.value,
                    amount=amount,
                    description=f"تکمیل وظیفه: {row.title}",
                    category=row.category,
                    date=today,
                    task_id=row.id,
                )
                self.session.add(record)
            else:
                logger.info(f"Task {task_id} completed with no amount, no financial record created")
        self.session.commit()
        self.session.refresh(row)
        if record is not None:
            self.session.refresh(record)
        return TaskCompletion(
            task=Task.model_validate(row),
            financial_record=FinancialRecord.model_validate(record) if record is not None else None,
        )

    def _reward_amount(self, row: TaskRow) -> float:
        if row.routine_job_id and row.financial_type != FinancialType.SPEND:
            job = self.session.get(RoutineJobRow, row.routine_job_id)
            if job is not None and job.user_id == row.user_id:
                return job.earnings
        return row.amount or 0.0


class GoalService:
    """Owner-scoped goals."""

    def __init__(self, session: Session) -> None:
        """Initialize the service with a SQLAlchemy session."""
        self.rows = OwnerScopedRepository(session, GoalRow, "goal")

    def list_goals(self, user_id: str) -> list[Goal]:
        """Return the owner's goals ordered by deadline."""
        return [Goal.model_validate(row) for row in self.rows.list_rows(user_id, GoalRow.deadline)]

    def get_goal(self, user_id: str, goal_id: str) -> Goal:
        """Return one goal."""
        return Goal.model_validate(self.rows.get(user_id, goal_id))

    def create_goal(self, user_id: str, data: GoalCreate) -> Goal:
        """Create a goal."""
        return Goal.model_validate(self.rows.create(user_id, **data.model_dump()))

    def update_goal(self, user_id: str, goal_id: str, data: GoalUpdate) -> Goal:
        """Apply owner edits."""
        return Goal.model_validate(self.rows.update(user_id, goal_id, **data.model_dump(exclude_unset=True)))

    def delete_goal(self, user_id: str, goal_id: str) -> None:
        """Delete a goal."""
        self.rows.delete(user_id, goal_id)
