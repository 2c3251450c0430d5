"""
Operations exposed to the routers.

Every write is validated (permissions, staff/store scoping, dates) before
anything touches the database, and commits as one transaction together
with the recompute it triggers.
"""
import logging
from datetime import date
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checklist_service.core.clock import Clock
from checklist_service.core.exceptions import (
    ColumnDeniedError, NotFoundError, PersistenceError, ValidationError,
)
from checklist_service.core.roles import Caller, Column, Role
from checklist_service.models.approval import ApprovalRecord
from checklist_service.models.catalog import ChecklistItem, DetailCategory
from checklist_service.models.monthly import MonthlyTrackingRecord
from checklist_service.models.score import EmployeeMonthlyScore
from checklist_service.services.access import ColumnAccessGate, staff_scope
from checklist_service.services.approval import ApprovalRecordStore
from checklist_service.services.monthly import MonthlyTrackingStore
from checklist_service.services.scoring import ScoreComputationEngine, DEFAULT_DAILY_BASELINE
from checklist_service.services.sweeper import DeadlineSweeper, SweepResult
from checklist_service.utils.calendar import validate_period

logger = logging.getLogger(__name__)


def resolve_staff(caller: Caller, staff_id: Optional[str]) -> str:
    if caller.role == Role.EMPLOYEE:
        if staff_id is not None and staff_id != caller.subject_id:
            raise ValidationError("Employees can only write their own records")
        return caller.subject_id
    return staff_id or caller.subject_id


def resolve_store(caller: Caller, store_id: Optional[str]) -> str:
    if not caller.store_ids:
        raise ValidationError("Caller is not assigned to any store")
    if store_id is None:
        return caller.store_ids[0]
    if store_id not in caller.store_ids:
        raise ValidationError(f"Caller is not assigned to store {store_id}")
    return store_id


class ChecklistService:

    def __init__(self, db: AsyncSession, clock: Clock, deadline_days: int = 3,
                 default_daily_baseline: int = DEFAULT_DAILY_BASELINE):
        self.db = db
        self.clock = clock
        self.approvals = ApprovalRecordStore(db, clock, deadline_days)
        self.monthly = MonthlyTrackingStore(db, clock)
        self.engine = ScoreComputationEngine(db, clock, default_daily_baseline)

    async def _require_item(self, item_id: int) -> ChecklistItem:
        item = await self.db.get(ChecklistItem, item_id)
        if item is None or item.is_deleted:
            raise NotFoundError(f"Checklist item {item_id} not found")
        return item

    async def upsert_approval(
        self,
        caller: Caller,
        item_id: int,
        assessment_date: date,
        columns: Mapping[str, bool],
        staff_id: Optional[str] = None,
        store_id: Optional[str] = None,
    ) -> ApprovalRecord:
        try:
            requested = {Column(name): bool(value) for name, value in columns.items()}
        except ValueError as e:
            raise ValidationError(f"Unknown approval column: {e}") from None

        decision = ColumnAccessGate.validate(caller.role, requested.keys())
        if not decision.allowed:
            logger.warning("Column write denied role=%s subject=%s columns=%s",
                           caller.role.value, caller.subject_id,
                           [c.value for c in decision.denied_columns])
            raise ColumnDeniedError(caller.role.value, [c.value for c in decision.denied_columns])

        staff = resolve_staff(caller, staff_id)
        store = resolve_store(caller, store_id)
        await self._require_item(item_id)

        try:
            record = await self.approvals.upsert(item_id, staff, store, assessment_date, requested)
            await self.db.commit()
        except PersistenceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError() from e
        return record

    async def upsert_monthly_day(
        self,
        caller: Caller,
        item_id: int,
        month: int,
        year: int,
        day: int,
        checked: bool,
        staff_id: Optional[str] = None,
        store_id: Optional[str] = None,
    ) -> MonthlyTrackingRecord:
        validate_period(month, year)
        staff = resolve_staff(caller, staff_id)
        store = resolve_store(caller, store_id)
        await self._require_item(item_id)

        try:
            record = await self.monthly.set_day(item_id, staff, store, month, year, day, checked)
            await self.engine.recompute(item_id, staff, store, month, year)
            await self.db.commit()
        except (PersistenceError, ValidationError):
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError() from e
        return record

    # -- reads --------------------------------------------------------------

    async def list_categories(self):
        result = await self.db.execute(
            select(DetailCategory)
            .where(DetailCategory.is_deleted.is_(False))
            .order_by(DetailCategory.order)
        )
        return result.scalars().all()

    async def _items(self):
        result = await self.db.execute(
            select(ChecklistItem)
            .join(DetailCategory, ChecklistItem.category_id == DetailCategory.id)
            .where(ChecklistItem.is_deleted.is_(False))
            .where(DetailCategory.is_deleted.is_(False))
            .order_by(DetailCategory.order, ChecklistItem.order, ChecklistItem.item_number)
        )
        return result.scalars().all()

    async def list_items_with_approval(self, caller: Caller, assessment_date: Optional[date] = None):
        """Items paired with the caller-visible approval for the date (or the latest one)."""
        query = (
            select(ApprovalRecord)
            .where(ApprovalRecord.is_deleted.is_(False))
            .where(*staff_scope(ApprovalRecord, caller))
        )
        if assessment_date is not None:
            query = query.where(ApprovalRecord.assessment_date == assessment_date)
        query = query.order_by(ApprovalRecord.assessment_date.desc(), ApprovalRecord.id)

        records = {}
        for record in (await self.db.execute(query)).scalars():
            records.setdefault(record.item_id, record)
        return [(item, records.get(item.id)) for item in await self._items()]

    async def list_assessment_dates(self, caller: Caller):
        result = await self.db.execute(
            select(ApprovalRecord.assessment_date)
            .where(ApprovalRecord.is_deleted.is_(False))
            .where(*staff_scope(ApprovalRecord, caller))
            .distinct()
            .order_by(ApprovalRecord.assessment_date.desc())
        )
        return result.scalars().all()

    async def list_items_with_monthly(self, caller: Caller, month: int, year: int):
        validate_period(month, year)
        result = await self.db.execute(
            select(MonthlyTrackingRecord)
            .where(MonthlyTrackingRecord.is_deleted.is_(False))
            .where(MonthlyTrackingRecord.month == month)
            .where(MonthlyTrackingRecord.year == year)
            .where(*staff_scope(MonthlyTrackingRecord, caller))
            .order_by(MonthlyTrackingRecord.id)
        )
        records = {}
        for record in result.scalars():
            records.setdefault(record.item_id, record)
        return [(item, records.get(item.id)) for item in await self._items()]

    async def get_monthly_score(self, caller: Caller, month: int, year: int,
                                staff_id: Optional[str] = None) -> Optional[EmployeeMonthlyScore]:
        validate_period(month, year)
        staff = resolve_staff(caller, staff_id)
        result = await self.db.execute(
            select(EmployeeMonthlyScore)
            .where(EmployeeMonthlyScore.staff_id == staff)
            .where(EmployeeMonthlyScore.month == month)
            .where(EmployeeMonthlyScore.year == year)
            .where(EmployeeMonthlyScore.is_deleted.is_(False))
        )
        return result.scalar_one_or_none()


async def run_deadline_sweep(session_factory: async_sessionmaker, clock: Clock,
                             default_daily_baseline: int = DEFAULT_DAILY_BASELINE) -> SweepResult:
    return await DeadlineSweeper(session_factory, clock, default_daily_baseline).sweep()
