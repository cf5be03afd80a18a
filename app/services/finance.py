"""Financial record operations: manual transactions, listings and summaries."""

import datetime as dt

from sqlalchemy.orm import Session

from app.core import jalali
from app.core.db import FinancialRecordRow
from app.core.errors import ImmutableRecordError
from app.core.models import (
    FinancialRecord,
    FinancialRecordCreate,
    FinancialRecordUpdate,
    FinancialSummary,
    RecordType,
)
from app.services.repository import OwnerScopedRepository


class FinancialRecordService:
    """Owner-scoped access to the financial ledger."""

    def __init__(self, session: Session) -> None:
        """Initialize the service with a SQLAlchemy session."""
        self.rows = OwnerScopedRepository(session, FinancialRecordRow, "financial record")

    def list_records(self, user_id: str, month_of: dt.date | None = None) -> list[FinancialRecord]:
        """Return the owner's records, newest first, optionally limited to the Jalali month containing ``month_of``."""
        rows = self.rows.list_rows(user_id, FinancialRecordRow.date.desc(), FinancialRecordRow.created_at.desc())
        if month_of is not None:
            start, end = jalali.start_of_month(month_of), jalali.end_of_month(month_of)
            rows = [row for row in rows if start <= row.date <= end]
        return [FinancialRecord.model_validate(row) for row in rows]

    def get_record(self, user_id: str, record_id: str) -> FinancialRecord:
        """Return one record."""
        return FinancialRecord.model_validate(self.rows.get(user_id, record_id))

    def create_record(self, user_id: str, data: FinancialRecordCreate, today: dt.date) -> FinancialRecord:
        """Insert a manual transaction. Missing dates default to ``today``."""
        values = data.model_dump()
        values["date"] = values["date"] or today
        return FinancialRecord.model_validate(self.rows.create(user_id, **values))

    def update_record(self, user_id: str, record_id: str, data: FinancialRecordUpdate) -> FinancialRecord:
        """Edit a manual transaction."""
        self._ensure_mutable(user_id, record_id)
        values = {field: value for field, value in data.model_dump(exclude_unset=True).items() if value is not None}
        row = self.rows.update(user_id, record_id, **values)
        return FinancialRecord.model_validate(row)

    def delete_record(self, user_id: str, record_id: str) -> None:
        """Delete a manual transaction."""
        self._ensure_mutable(user_id, record_id)
        self.rows.delete(user_id, record_id)

    def summary(self, user_id: str, month_of: dt.date | None = None) -> FinancialSummary:
        """Total income and expense over the owner's records, labelled with the Jalali month when one is given."""
        result = FinancialSummary(month=jalali.month_label(month_of) if month_of is not None else None)
        for record in self.list_records(user_id, month_of):
            if record.type == RecordType.INCOME:
                result.income += record.amount
            else:
                result.expense += record.amount
            result.count += 1
        return result

    def _ensure_mutable(self, user_id: str, record_id: str) -> None:
        row = self.rows.get(user_id, record_id)
        if row.is_payout:
            msg = f"Financial record {record_id} is a routine job payout and cannot be changed"
            raise ImmutableRecordError(msg)
