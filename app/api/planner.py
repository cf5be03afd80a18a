"""Owner-scoped planner endpoints: routine jobs, financial records, habits, tasks and goals.

Every route requires the ``X-User-Id`` header and only ever sees that owner's rows. Routine job accrual state is
read-only here; it changes only through the reconciler.
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from app.api.dependencies import get_db_session, get_owner_id, get_today
from app.core.models import (
    AccrualProgress,
    FinancialRecord,
    FinancialRecordCreate,
    FinancialRecordUpdate,
    FinancialSummary,
    Goal,
    GoalCreate,
    GoalUpdate,
    Habit,
    HabitCreate,
    HabitToggle,
    HabitUpdate,
    RoutineJob,
    RoutineJobCreate,
    RoutineJobUpdate,
    Task,
    TaskCompletion,
    TaskCreate,
    TaskUpdate,
)
from app.services.finance import FinancialRecordService
from app.services.planner import GoalService, HabitService, TaskService
from app.services.routine_jobs import RoutineJobService

router = APIRouter()

# --- Routine jobs ---


@router.get("/routine-jobs", response_model=list[RoutineJob], tags=["routine jobs"])
def list_routine_jobs(user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> list[RoutineJob]:
    """List the owner's routine jobs."""
    return RoutineJobService(db).list_jobs(user_id)


@router.post("/routine-jobs", response_model=RoutineJob, status_code=201, tags=["routine jobs"])
def create_routine_job(
    data: RoutineJobCreate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> RoutineJob:
    """Create a routine job."""
    return RoutineJobService(db).create_job(user_id, data)


@router.get("/routine-jobs/{job_id}", response_model=RoutineJob, tags=["routine jobs"])
def get_routine_job(
    job_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> RoutineJob:
    """Get one routine job."""
    return RoutineJobService(db).get_job(user_id, job_id)


@router.patch(
    "/routine-jobs/{job_id}",
    response_model=RoutineJob,
    tags=["routine jobs"],
    description="Edit a routine job. `completions` and `last_payout_date` are not accepted (422).",
)
def update_routine_job(
    job_id: str,
    data: RoutineJobUpdate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> RoutineJob:
    """Edit a routine job."""
    return RoutineJobService(db).update_job(user_id, job_id, data)


@router.delete("/routine-jobs/{job_id}", status_code=204, tags=["routine jobs"])
def delete_routine_job(
    job_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Response:
    """Delete a routine job."""
    RoutineJobService(db).delete_job(user_id, job_id)
    return Response(status_code=204)


@router.post("/routine-jobs/{job_id}/toggle-active", response_model=RoutineJob, tags=["routine jobs"])
def toggle_routine_job(
    job_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> RoutineJob:
    """Pause or resume a routine job."""
    return RoutineJobService(db).toggle_active(user_id, job_id)


@router.get("/routine-jobs/{job_id}/progress", response_model=AccrualProgress, tags=["routine jobs"])
def routine_job_progress(
    job_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> AccrualProgress:
    """Read how many occurrences are logged towards the next payout."""
    return RoutineJobService(db).progress(user_id, job_id)


# --- Financial records ---


@router.get("/financial-records", response_model=list[FinancialRecord], tags=["finance"])
def list_financial_records(
    month_of: dt.date | None = Query(default=None, description="Limit to the Jalali month containing this date"),
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> list[FinancialRecord]:
    """List the owner's financial records."""
    return FinancialRecordService(db).list_records(user_id, month_of)


@router.get("/financial-records/summary", response_model=FinancialSummary, tags=["finance"])
def financial_summary(
    month_of: dt.date | None = Query(default=None, description="Limit to the Jalali month containing this date"),
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> FinancialSummary:
    """Total income, expense and balance."""
    return FinancialRecordService(db).summary(user_id, month_of)


@router.post("/financial-records", response_model=FinancialRecord, status_code=201, tags=["finance"])
def create_financial_record(
    data: FinancialRecordCreate,
    user_id: str = Depends(get_owner_id),
    today: dt.date = Depends(get_today),
    db: Session = Depends(get_db_session),
) -> FinancialRecord:
    """Record a manual income or expense."""
    return FinancialRecordService(db).create_record(user_id, data, today)


@router.get("/financial-records/{record_id}", response_model=FinancialRecord, tags=["finance"])
def get_financial_record(
    record_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> FinancialRecord:
    """Get one financial record."""
    return FinancialRecordService(db).get_record(user_id, record_id)


@router.patch(
    "/financial-records/{record_id}",
    response_model=FinancialRecord,
    tags=["finance"],
    responses={409: {"description": "Routine job payouts cannot be changed."}},
)
def update_financial_record(
    record_id: str,
    data: FinancialRecordUpdate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> FinancialRecord:
    """Edit a manual transaction."""
    return FinancialRecordService(db).update_record(user_id, record_id, data)


@router.delete(
    "/financial-records/{record_id}",
    status_code=204,
    tags=["finance"],
    responses={409: {"description": "Routine job payouts cannot be deleted."}},
)
def delete_financial_record(
    record_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Response:
    """Delete a manual transaction."""
    FinancialRecordService(db).delete_record(user_id, record_id)
    return Response(status_code=204)


# --- Habits ---


@router.get("/habits", response_model=list[Habit], tags=["habits"])
def list_habits(user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> list[Habit]:
    """List the owner's habits."""
    return HabitService(db).list_habits(user_id)


@router.post("/habits", response_model=Habit, status_code=201, tags=["habits"])
def create_habit(
    data: HabitCreate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Habit:
    """Create a habit."""
    return HabitService(db).create_habit(user_id, data)


@router.patch("/habits/{habit_id}", response_model=Habit, tags=["habits"])
def update_habit(
    habit_id: str,
    data: HabitUpdate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Habit:
    """Edit a habit."""
    return HabitService(db).update_habit(user_id, habit_id, data)


@router.delete("/habits/{habit_id}", status_code=204, tags=["habits"])
def delete_habit(
    habit_id: str,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Response:
    """Delete a habit."""
    HabitService(db).delete_habit(user_id, habit_id)
    return Response(status_code=204)


@router.post("/habits/{habit_id}/toggle", response_model=Habit, tags=["habits"])
def toggle_habit(
    habit_id: str,
    data: HabitToggle,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Habit:
    """Flip a habit's completion for one day."""
    return HabitService(db).toggle_completion(user_id, habit_id, data.date)


# --- Tasks ---


@router.get("/tasks", response_model=list[Task], tags=["tasks"])
def list_tasks(
    scheduled_date: dt.date | None = Query(default=None),
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> list[Task]:
    """List the owner's tasks."""
    return TaskService(db).list_tasks(user_id, scheduled_date)


@router.post("/tasks", response_model=Task, status_code=201, tags=["tasks"])
def create_task(data: TaskCreate, user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> Task:
    """Create a task."""
    return TaskService(db).create_task(user_id, data)


@router.patch("/tasks/{task_id}", response_model=Task, tags=["tasks"])
def update_task(
    task_id: str,
    data: TaskUpdate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Task:
    """Edit a task."""
    return TaskService(db).update_task(user_id, task_id, data)


@router.delete("/tasks/{task_id}", status_code=204, tags=["tasks"])
def delete_task(task_id: str, user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> Response:
    """Delete a task."""
    TaskService(db).delete_task(user_id, task_id)
    return Response(status_code=204)


@router.post("/tasks/{task_id}/complete", response_model=TaskCompletion, tags=["tasks"])
def complete_task(
    task_id: str,
    user_id: str = Depends(get_owner_id),
    today: dt.date = Depends(get_today),
    db: Session = Depends(get_db_session),
) -> TaskCompletion:
    """Mark a task done and record its reward or expense."""
    return TaskService(db).complete_task(user_id, task_id, today)


# --- Goals ---


@router.get("/goals", response_model=list[Goal], tags=["goals"])
def list_goals(user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> list[Goal]:
    """List the owner's goals."""
    return GoalService(db).list_goals(user_id)


@router.post("/goals", response_model=Goal, status_code=201, tags=["goals"])
def create_goal(data: GoalCreate, user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> Goal:
    """Create a goal."""
    return GoalService(db).create_goal(user_id, data)


@router.patch("/goals/{goal_id}", response_model=Goal, tags=["goals"])
def update_goal(
    goal_id: str,
    data: GoalUpdate,
    user_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db_session),
) -> Goal:
    """Edit a goal."""
    return GoalService(db).update_goal(user_id, goal_id, data)


@router.delete("/goals/{goal_id}", status_code=204, tags=["goals"])
def delete_goal(goal_id: str, user_id: str = Depends(get_owner_id), db: Session = Depends(get_db_session)) -> Response:
    """Delete a goal."""
    GoalService(db).delete_goal(user_id, goal_id)
    return Response(status_code=204)
