"""Owner-scoped row access shared by the planner services."""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError

RowT = TypeVar("RowT")


class OwnerScopedRepository(Generic[RowT]):
    """CRUD over one table, always filtered by ``user_id``.

    A row owned by someone else is reported as missing, never as forbidden.
    """

    def __init__(self, session: Session, row_cls: type[RowT], kind: str) -> None:
        """Bind the repository to a session and an ORM class."""
        self.session = session
        self.row_cls = row_cls
        self.kind = kind

    def list_rows(self, user_id: str, *order_by: Any, **filters: Any) -> list[RowT]:
        """Return the owner's rows, optionally filtered by column equality."""
        stmt = select(self.row_cls).where(self.row_cls.user_id == user_id)
        for column, value in filters.items():
            stmt = stmt.where(getattr(self.row_cls, column) == value)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return list(self.session.execute(stmt).scalars().all())

    def get(self, user_id: str, row_id: str) -> RowT:
        """Return one row or raise NotFoundError."""
        row = self.session.get(self.row_cls, row_id)
        if row is None or row.user_id != user_id:
            raise NotFoundError(self.kind, row_id)
        return row

    def create(self, user_id: str, **values: Any) -> RowT:
        """Insert a row for the owner and commit."""
        row = self.row_cls(user_id=user_id, **values)
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def update(self, user_id: str, row_id: str, **values: Any) -> RowT:
        """Apply field changes to one row and commit. ``None`` is ignored for NOT NULL columns."""
        row = self.get(user_id, row_id)
        columns = self.row_cls.__table__.columns
        for field, value in values.items():
            if value is None and not columns[field].nullable:
                continue
            setattr(row, field, value)
        self.session.commit()
        self.session.refresh(row)
        return row

    def delete(self, user_id: str, row_id: str) -> None:
        """Remove one row and commit."""
        row = self.get(user_id, row_id)
        self.session.delete(row)
        self.session.commit()
