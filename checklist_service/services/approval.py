import logging
from datetime import date
from typing import Mapping, Optional

from sqlalchemy import select, case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checklist_service.core.clock import Clock
from checklist_service.core.exceptions import PersistenceError
from checklist_service.core.roles import Column
from checklist_service.database import active_row_clause, upsert_insert
from checklist_service.models.approval import ApprovalRecord
from checklist_service.utils.calendar import deadline_for

logger = logging.getLogger(__name__)

# approval column -> its "checked at" timestamp column
CHECKED_AT = {
    Column.EMPLOYEE_CHECKED: "employee_checked_at",
    Column.CHT_CHECKED: "cht_checked_at",
    Column.ASM_CHECKED: "asm_checked_at",
}


class ApprovalRecordStore:
    """Daily approval records keyed on (item, staff, assessment date)."""

    def __init__(self, db: AsyncSession, clock: Clock, deadline_days: int = 3):
        self.db = db
        self.clock = clock
        self.deadline_days = deadline_days

    async def get(self, item_id: int, staff_id: str, assessment_date: date) -> Optional[ApprovalRecord]:
        result = await self.db.execute(
            select(ApprovalRecord)
            .where(ApprovalRecord.item_id == item_id)
            .where(ApprovalRecord.staff_id == staff_id)
            .where(ApprovalRecord.assessment_date == assessment_date)
            .where(ApprovalRecord.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        item_id: int,
        staff_id: str,
        store_id: str,
        assessment_date: date,
        fields_by_column: Mapping[Column, bool],
    ) -> ApprovalRecord:
        """
        Insert or update in one statement against the partial unique index.

        Only the supplied columns are written. A column's ``*_at`` stamp moves
        only on a false -> true transition. ``deadline_date`` is fixed by the
        first insert and ``is_locked`` is never touched here.
        """
        now = self.clock.now()
        fields = {Column(col): bool(value) for col, value in fields_by_column.items()}

        values = {
            "item_id": item_id,
            "staff_id": staff_id,
            "store_id": store_id,
            "assessment_date": assessment_date,
            "deadline_date": deadline_for(assessment_date, self.deadline_days),
            "is_locked": False,
            "is_deleted": False,
            "created_at": now,
            "updated_at": now,
        }
        for col in Column:
            checked = fields.get(col, False)
            values[col.value] = checked
            values[CHECKED_AT[col]] = now if checked else None

        stmt = upsert_insert(self.db, ApprovalRecord).values([values])
        table = ApprovalRecord.__table__.c
        set_ = {
            "deadline_date": func.coalesce(table.deadline_date, stmt.excluded.deadline_date),
            "updated_at": stmt.excluded.updated_at,
        }
        for col, checked in fields.items():
            at = CHECKED_AT[col]
            set_[col.value] = stmt.excluded[col.value]
            if checked:
                set_[at] = case(
                    (table[col.value].is_(True), table[at]),
                    else_=stmt.excluded[at],
                )
        stmt = stmt.on_conflict_do_update(
            index_elements=["item_id", "staff_id", "assessment_date"],
            index_where=active_row_clause(),
            set_=set_,
        )

        try:
            result = await self.db.scalars(
                stmt.returning(ApprovalRecord),
                execution_options={"populate_existing": True},
            )
            record = result.one()
        except SQLAlchemyError as e:
            logger.error("Approval upsert failed for item=%s staff=%s date=%s: %s",
                         item_id, staff_id, assessment_date, e)
            raise PersistenceError() from e

        logger.info(
            "Approval upserted item=%s staff=%s date=%s columns=%s",
            item_id, staff_id, assessment_date,
            {col.value: value for col, value in fields.items()},
        )
        return record
