import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import update, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checklist_service.core.clock import Clock
from checklist_service.core.exceptions import ChecklistError, PersistenceError
from checklist_service.models.approval import ApprovalRecord
from checklist_service.services.monthly import MonthlyTrackingStore
from checklist_service.services.scoring import ScoreComputationEngine, DEFAULT_DAILY_BASELINE

logger = logging.getLogger(__name__)

# pg advisory lock key for single-flight sweeps
SWEEP_LOCK_KEY = 0x43484B4C


@dataclass(frozen=True)
class SweepResult:
    invalidated_count: int = 0
    cascaded_count: int = 0


@dataclass(frozen=True)
class LockedRecord:
    item_id: int
    staff_id: str
    store_id: str
    assessment_date: date


def expired_clauses(today: date):
    """Self-reported, not countersigned, not yet locked, deadline passed."""
    return (
        ApprovalRecord.deadline_date < today,
        ApprovalRecord.employee_checked.is_(True),
        ApprovalRecord.cht_checked.is_(False),
        ApprovalRecord.is_locked.is_(False),
        ApprovalRecord.is_deleted.is_(False),
    )


class DeadlineSweeper:
    """
    Discards self-reports the supervisor did not countersign before the deadline.

    Each expired record is locked, un-approved, cleared from the monthly
    tracker and rescored in one transaction of its own. A record whose
    cascade fails stays unlocked and is picked up again by the next sweep;
    the others go through regardless.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Clock,
        default_daily_baseline: int = DEFAULT_DAILY_BASELINE,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.default_daily_baseline = default_daily_baseline

    async def sweep(self) -> SweepResult:
        today = self.clock.today()
        async with self.session_factory() as guard:
            # the guard transaction holds the single-flight lock for the whole loop
            async with guard.begin():
                try:
                    if not await self._try_single_flight(guard):
                        logger.warning("Deadline sweep skipped: another sweep is running")
                        return SweepResult()
                    candidates = await self._expired_ids(guard, today)
                except SQLAlchemyError as e:
                    logger.error("Deadline sweep candidate query failed: %s", e)
                    raise PersistenceError() from e

                invalidated = 0
                for record_id in candidates:
                    try:
                        locked = await self._invalidate(record_id, today)
                    except (ChecklistError, SQLAlchemyError):
                        logger.exception("Deadline cascade failed for approval id=%s", record_id)
                        continue
                    if locked is not None:
                        invalidated += 1

        logger.info("Deadline sweep done: candidates=%s invalidated=%s", len(candidates), invalidated)
        return SweepResult(invalidated_count=invalidated, cascaded_count=invalidated)

    async def _try_single_flight(self, db: AsyncSession) -> bool:
        if db.get_bind().dialect.name != "postgresql":
            return True
        result = await db.execute(select(func.pg_try_advisory_xact_lock(SWEEP_LOCK_KEY)))
        return bool(result.scalar_one())

    async def _expired_ids(self, db: AsyncSession, today: date) -> List[int]:
        result = await db.execute(
            select(ApprovalRecord.id)
            .where(*expired_clauses(today))
            .order_by(ApprovalRecord.id)
        )
        return list(result.scalars().all())

    async def _invalidate(self, record_id: int, today: date) -> Optional[LockedRecord]:
        """Lock one record and cascade it; returns None if it no longer qualifies."""
        now = self.clock.now()
        async with self.session_factory() as db:
            async with db.begin():
                # re-checked here: a countersign may have landed since the candidate query
                result = await db.execute(
                    update(ApprovalRecord)
                    .where(ApprovalRecord.id == record_id)
                    .where(*expired_clauses(today))
                    .values(
                        employee_checked=False,
                        is_locked=True,
                        locked_at=now,
                        updated_at=now,
                    )
                    .returning(
                        ApprovalRecord.item_id,
                        ApprovalRecord.staff_id,
                        ApprovalRecord.store_id,
                        ApprovalRecord.assessment_date,
                    )
                    .execution_options(synchronize_session=False)
                )
                row = result.one_or_none()
                if row is None:
                    return None
                record = LockedRecord(*row)
                day = record.assessment_date
                await MonthlyTrackingStore(db, self.clock).set_day(
                    record.item_id, record.staff_id, record.store_id,
                    day.month, day.year, day.day, checked=False,
                )
                await ScoreComputationEngine(db, self.clock, self.default_daily_baseline).recompute(
                    record.item_id, record.staff_id, record.store_id, day.month, day.year,
                )
        return record
