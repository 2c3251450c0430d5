import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checklist_service.core.clock import Clock
from checklist_service.core.exceptions import PersistenceError
from checklist_service.database import active_row_clause, upsert_insert
from checklist_service.models.monthly import DAY_SLOTS, MonthlyTrackingRecord
from checklist_service.utils.calendar import validate_day

logger = logging.getLogger(__name__)


def empty_checks() -> List[bool]:
    return [False] * DAY_SLOTS


def normalize_checks(checks: Optional[Sequence[bool]]) -> List[bool]:
    """Always exactly DAY_SLOTS booleans; missing slots read as unchecked."""
    normalized = [bool(c) for c in (checks or [])][:DAY_SLOTS]
    return normalized + [False] * (DAY_SLOTS - len(normalized))


class MonthlyTrackingStore:
    """
    Monthly day trackers keyed on (item, staff, month, year).

    This store knows nothing about scoring: after a successful set_day the
    caller must run ScoreComputationEngine.recompute for the same key.
    """

    def __init__(self, db: AsyncSession, clock: Clock):
        self.db = db
        self.clock = clock

    def _key_query(self, item_id: int, staff_id: str, month: int, year: int):
        return (
            select(MonthlyTrackingRecord)
            .where(MonthlyTrackingRecord.item_id == item_id)
            .where(MonthlyTrackingRecord.staff_id == staff_id)
            .where(MonthlyTrackingRecord.month == month)
            .where(MonthlyTrackingRecord.year == year)
            .where(MonthlyTrackingRecord.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )

    async def get(self, item_id: int, staff_id: str, month: int, year: int) -> Optional[MonthlyTrackingRecord]:
        result = await self.db.execute(self._key_query(item_id, staff_id, month, year))
        return result.scalar_one_or_none()

    async def set_day(
        self,
        item_id: int,
        staff_id: str,
        store_id: str,
        month: int,
        year: int,
        day: int,
        checked: bool,
    ) -> MonthlyTrackingRecord:
        # Raises before any write
        validate_day(day, month, year)
        now = self.clock.now()

        insert_stmt = upsert_insert(self.db, MonthlyTrackingRecord).values(
            item_id=item_id,
            staff_id=staff_id,
            store_id=store_id,
            month=month,
            year=year,
            daily_checks=empty_checks(),
            is_deleted=False,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(
            index_elements=["item_id", "staff_id", "month", "year"],
            index_where=active_row_clause(),
        )

        try:
            # Make sure the row exists, then hold its lock while flipping the slot
            # so concurrent writers to other days of the same month serialize.
            await self.db.execute(insert_stmt)
            result = await self.db.execute(
                self._key_query(item_id, staff_id, month, year).with_for_update()
            )
            record = result.scalar_one()

            checks = normalize_checks(record.daily_checks)
            checks[day - 1] = bool(checked)
            record.daily_checks = checks
            record.updated_at = now
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Monthly set_day failed for item=%s staff=%s %s-%s day=%s: %s",
                         item_id, staff_id, year, month, day, e)
            raise PersistenceError() from e

        logger.info("Monthly day set item=%s staff=%s %s-%02d day=%s checked=%s",
                    item_id, staff_id, year, month, day, checked)
        return record
