"""DB engine, ORM tables and session helpers for the Routine Ledger."""

from collections.abc import Iterator

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.utils import new_id, utcnow

Base = declarative_base()


class RoutineJobRow(Base):
    """A recurring income-generating activity. ``completion_count`` mirrors the open completion log."""

    __tablename__ = "routine_jobs"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    earnings = Column(Float, nullable=False)
    frequency = Column(String, nullable=False)
    days_of_week = Column(JSON, nullable=False, default=list)
    active = Column(Boolean, nullable=False, default=True, index=True)
    category = Column(String, nullable=False, default="career")
    completion_count = Column(Integer, nullable=False, default=0)
    last_payout_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    completion_log = relationship(
        "RoutineJobCompletionRow",
        back_populates="job",
        order_by="RoutineJobCompletionRow.completed_on",
        cascade="all, delete-orphan",
    )

    @property
    def open_completions(self) -> list["RoutineJobCompletionRow"]:
        """Completion rows not yet consumed by a payout."""
        return [c for c in self.completion_log if c.payout_record_id is None]

    @property
    def completions(self) -> list:
        """Dates of the open completion rows, oldest first."""
        return [c.completed_on for c in self.open_completions]


class RoutineJobCompletionRow(Base):
    """Append-only completion log. Rows are closed by a payout, never deleted by one."""

    __tablename__ = "routine_job_completions"
    __table_args__ = (UniqueConstraint("routine_job_id", "completed_on", name="uq_completion_job_day"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    routine_job_id = Column(String, ForeignKey("routine_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    completed_on = Column(Date, nullable=False)
    payout_record_id = Column(String, ForeignKey("financial_records.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    job = relationship("RoutineJobRow", back_populates="completion_log")


class FinancialRecordRow(Base):
    """An income or expense ledger entry. ``is_payout`` survives the deletion of the routine job it came from."""

    __tablename__ = "financial_records"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False)
    date = Column(Date, nullable=False, index=True)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    routine_job_id = Column(String, ForeignKey("routine_jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    is_payout = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class HabitRow(Base):
    """A habit with a user-editable list of ``{date, completed}`` entries."""

    __tablename__ = "habits"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)
    target_frequency = Column(String, nullable=False, default="daily")
    completions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class TaskRow(Base):
    """A planner task, optionally carrying a financial consequence."""

    __tablename__ = "tasks"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)
    status = Column(String, nullable=False, default="not_started")
    scheduled_date = Column(Date, nullable=True)
    financial_type = Column(String, nullable=True)
    amount = Column(Float, nullable=True)
    routine_job_id = Column(String, ForeignKey("routine_jobs.id", ondelete="SET NULL"), nullable=True)
    goal_id = Column(String, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class GoalRow(Base):
    """A planner goal."""

    __tablename__ = "goals"
    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False)
    type = Column(String, nullable=False, default="annual")
    deadline = Column(Date, nullable=False)
    target_amount = Column(Float, nullable=True)
    current_amount = Column(Float, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


def get_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine using the configured database URL."""
    if url is None:
        from app.core.settings import get_settings

        url = get_settings().database_url
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url)


engine = get_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind or engine)


def get_session() -> Iterator[Session]:
    """Yield a session and close it afterwards (FastAPI dependency)."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
