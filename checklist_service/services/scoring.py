import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checklist_service.core.clock import Clock
from checklist_service.core.exceptions import PersistenceError
from checklist_service.database import active_row_clause, upsert_insert
from checklist_service.models.catalog import ChecklistItem
from checklist_service.models.monthly import MonthlyTrackingRecord
from checklist_service.models.score import EmployeeMonthlyScore
from checklist_service.utils.calendar import days_in_month

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = {"A": 8.0, "B": 5.0, "C": 3.0}
DEFAULT_DAILY_BASELINE = 26
NOT_MET = "KHONG_DAT"

# Aggregate cut-points. C is exclusive at 50 while A and B are inclusive.
TOTAL_A = 90
TOTAL_B = 70
TOTAL_C = 50


@dataclass(frozen=True)
class ItemScore:
    successful_completions: int
    achievement_percentage: float
    score_achieved: float
    classification: str


def effective_baseline(
    category_type: str,
    criteria: Optional[Mapping],
    item_baseline: Optional[int],
    default_daily: int = DEFAULT_DAILY_BASELINE,
) -> Optional[float]:
    if category_type == "daily":
        override = (criteria or {}).get("baseline")
        return default_daily if override is None else override
    return item_baseline


def count_completions(daily_checks: Optional[Sequence[bool]], month_days: int) -> int:
    return sum(1 for checked in list(daily_checks or [])[:month_days] if checked)


def thresholds_from(criteria: Optional[Mapping]) -> dict:
    configured = (criteria or {}).get("thresholds") or {}
    return {
        grade: float(configured[grade]) if configured.get(grade) is not None else default
        for grade, default in DEFAULT_THRESHOLDS.items()
    }


def classify_item(score_achieved: float, thresholds: Mapping[str, float]) -> str:
    if score_achieved >= thresholds["A"]:
        return "A"
    if score_achieved >= thresholds["B"]:
        return "B"
    if score_achieved >= thresholds["C"]:
        return "C"
    return NOT_MET


def classify_total(total_score: float) -> str:
    if total_score >= TOTAL_A:
        return "A"
    if total_score >= TOTAL_B:
        return "B"
    if total_score > TOTAL_C:
        return "C"
    return "D"


def score_item(
    daily_checks: Optional[Sequence[bool]],
    month: int,
    year: int,
    item_score: float,
    category_type: str,
    criteria: Optional[Mapping] = None,
    item_baseline: Optional[int] = None,
    default_daily: int = DEFAULT_DAILY_BASELINE,
) -> ItemScore:
    """Pure scoring of one tracker. Values are rounded, the grade is not."""
    month_days = days_in_month(month, year)
    baseline = effective_baseline(category_type, criteria, item_baseline, default_daily)
    completions = count_completions(daily_checks, month_days)

    if baseline and baseline > 0:
        ratio = completions / baseline
        percentage = ratio * 100
        achieved = ratio * item_score
    else:
        percentage = 0.0
        achieved = 0.0

    return ItemScore(
        successful_completions=completions,
        achievement_percentage=round(percentage, 2),
        score_achieved=round(achieved, 2),
        classification=classify_item(achieved, thresholds_from(criteria)),
    )


class ScoreComputationEngine:
    """Recomputes a tracker's derived fields and the staff member's monthly total."""

    def __init__(self, db: AsyncSession, clock: Clock, default_daily_baseline: int = DEFAULT_DAILY_BASELINE):
        self.db = db
        self.clock = clock
        self.default_daily_baseline = default_daily_baseline

    async def recompute(
        self, item_id: int, staff_id: str, store_id: str, month: int, year: int
    ) -> Optional[ItemScore]:
        """
        Returns the item's new score, or None when there is no tracker (or no
        item) to recompute. Running it twice on unchanged input is a no-op.
        """
        try:
            item = await self.db.get(ChecklistItem, item_id)
            if item is None:
                logger.info("Recompute skipped: checklist item %s not found", item_id)
                return None

            result = await self.db.execute(
                select(MonthlyTrackingRecord)
                .where(MonthlyTrackingRecord.item_id == item_id)
                .where(MonthlyTrackingRecord.staff_id == staff_id)
                .where(MonthlyTrackingRecord.month == month)
                .where(MonthlyTrackingRecord.year == year)
                .where(MonthlyTrackingRecord.is_deleted.is_(False))
                .execution_options(populate_existing=True)
            )
            record = result.scalar_one_or_none()
            if record is None:
                logger.info("Recompute skipped: no tracker for item=%s staff=%s %s-%s",
                            item_id, staff_id, year, month)
                return None

            category = item.category
            scored = score_item(
                record.daily_checks,
                month,
                year,
                item_score=item.score,
                category_type=category.category_type,
                criteria=category.classification_criteria,
                item_baseline=item.baseline,
                default_daily=self.default_daily_baseline,
            )

            record.successful_completions = scored.successful_completions
            record.achievement_percentage = scored.achievement_percentage
            record.score_achieved = scored.score_achieved
            record.classification = scored.classification
            record.updated_at = self.clock.now()
            await self.db.flush()

            total = await self.refresh_monthly_total(staff_id, month, year)
        except SQLAlchemyError as e:
            logger.error("Recompute failed for item=%s staff=%s %s-%s: %s",
                         item_id, staff_id, year, month, e)
            raise PersistenceError() from e

        logger.info(
            "Recomputed item=%s staff=%s %s-%02d completions=%s score=%s class=%s total=%s",
            item_id, staff_id, year, month, scored.successful_completions,
            scored.score_achieved, scored.classification, total.total_score,
        )
        return scored

    async def refresh_monthly_total(self, staff_id: str, month: int, year: int) -> EmployeeMonthlyScore:
        """Re-derive the aggregate from a full scan; never incremented."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(MonthlyTrackingRecord.score_achieved), 0.0))
            .where(MonthlyTrackingRecord.staff_id == staff_id)
            .where(MonthlyTrackingRecord.month == month)
            .where(MonthlyTrackingRecord.year == year)
            .where(MonthlyTrackingRecord.is_deleted.is_(False))
        )
        total_score = round(float(result.scalar_one()), 2)
        now = self.clock.now()

        stmt = upsert_insert(self.db, EmployeeMonthlyScore).values([{
            "staff_id": staff_id,
            "month": month,
            "year": year,
            "total_score": total_score,
            "final_classification": classify_total(total_score),
            "is_deleted": False,
            "created_at": now,
            "updated_at": now,
        }])
        stmt = stmt.on_conflict_do_update(
            index_elements=["staff_id", "month", "year"],
            index_where=active_row_clause(),
            set_={
                "total_score": stmt.excluded.total_score,
                "final_classification": stmt.excluded.final_classification,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        scores = await self.db.scalars(
            stmt.returning(EmployeeMonthlyScore),
            execution_options={"populate_existing": True},
        )
        return scores.one()
