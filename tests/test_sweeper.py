"""Deadline sweep: lock, un-approve and cascade into the monthly tracker."""
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from checklist_service.core.exceptions import PersistenceError
from checklist_service.core.roles import Column
from checklist_service.models.approval import ApprovalRecord
from checklist_service.models.monthly import MonthlyTrackingRecord
from checklist_service.models.score import EmployeeMonthlyScore
from checklist_service.services import sweeper as sweeper_module
from checklist_service.services.approval import ApprovalRecordStore
from checklist_service.services.monthly import MonthlyTrackingStore
from checklist_service.services.scoring import ScoreComputationEngine
from checklist_service.services.sweeper import DeadlineSweeper

STAFF = "emp-001"
STORE = "store-hcm-01"


async def self_report(db, clock, item, day, **columns):
    """Employee ticks Sheet 1 and Sheet 2 for ``day`` the way the service does."""
    fields = {Column.EMPLOYEE_CHECKED: True}
    fields.update({Column(name): value for name, value in columns.items()})
    await ApprovalRecordStore(db, clock).upsert(item, STAFF, STORE, day, fields)
    await MonthlyTrackingStore(db, clock).set_day(item, STAFF, STORE, day.month, day.year, day.day, True)
    await ScoreComputationEngine(db, clock).recompute(item, STAFF, STORE, day.month, day.year)
    await db.commit()


async def load_approval(session_factory, item, day):
    async with session_factory() as db:
        result = await db.execute(
            select(ApprovalRecord)
            .where(ApprovalRecord.item_id == item)
            .where(ApprovalRecord.staff_id == STAFF)
            .where(ApprovalRecord.assessment_date == day)
        )
        return result.scalar_one()


async def load_tracker(session_factory, item, month=1, year=2024):
    async with session_factory() as db:
        result = await db.execute(
            select(MonthlyTrackingRecord)
            .where(MonthlyTrackingRecord.item_id == item)
            .where(MonthlyTrackingRecord.staff_id == STAFF)
            .where(MonthlyTrackingRecord.month == month)
            .where(MonthlyTrackingRecord.year == year)
        )
        return result.scalar_one()


async def load_total(session_factory, month=1, year=2024):
    async with session_factory() as db:
        result = await db.execute(
            select(EmployeeMonthlyScore)
            .where(EmployeeMonthlyScore.staff_id == STAFF)
            .where(EmployeeMonthlyScore.month == month)
            .where(EmployeeMonthlyScore.year == year)
        )
        return result.scalar_one()


def sweep_on(session_factory, clock, day):
    clock.set(datetime(day.year, day.month, day.day, 1, 0, tzinfo=timezone.utc))
    return DeadlineSweeper(session_factory, clock).sweep()


async def test_expired_self_report_is_discarded(db, session_factory, clock, catalog):
    item = catalog["open_checklist"]
    await self_report(db, clock, item, date(2024, 1, 10))
    await self_report(db, clock, item, date(2024, 1, 9))
    assert (await load_total(session_factory)).total_score == 0.77

    result = await sweep_on(session_factory, clock, date(2024, 1, 14))

    # both 9th (deadline 12th) and 10th (deadline 13th) are past due on the 14th
    assert result.invalidated_count == 2
    assert result.cascaded_count == 2

    record = await load_approval(session_factory, item, date(2024, 1, 10))
    assert record.deadline_date == date(2024, 1, 13)
    assert record.employee_checked is False
    assert record.is_locked is True
    assert record.locked_at is not None

    tracker = await load_tracker(session_factory, item)
    assert tracker.daily_checks[9] is False
    assert tracker.daily_checks[8] is False
    assert tracker.successful_completions == 0
    assert tracker.score_achieved == 0

    total = await load_total(session_factory)
    assert total.total_score == 0
    assert total.final_classification == "D"


async def test_deadline_day_itself_is_not_expired(db, session_factory, clock, catalog):
    item = catalog["open_checklist"]
    await self_report(db, clock, item, date(2024, 1, 10))

    result = await sweep_on(session_factory, clock, date(2024, 1, 13))

    assert result.invalidated_count == 0
    record = await load_approval(session_factory, item, date(2024, 1, 10))
    assert record.employee_checked is True
    assert record.is_locked is False


async def test_countersigned_records_are_kept(db, session_factory, clock, catalog):
    item = catalog["open_checklist"]
    await self_report(db, clock, item, date(2024, 1, 10), cht_checked=True)

    result = await sweep_on(session_factory, clock, date(2024, 1, 20))

    assert result.invalidated_count == 0
    assert (await load_tracker(session_factory, item)).daily_checks[9] is True


async def test_records_without_self_report_are_ignored(db, session_factory, clock, catalog):
    await ApprovalRecordStore(db, clock).upsert(
        catalog["open_checklist"], STAFF, STORE, date(2024, 1, 10), {Column.ASM_CHECKED: True})
    await db.commit()

    result = await sweep_on(session_factory, clock, date(2024, 1, 20))
    assert result.invalidated_count == 0


async def test_second_sweep_is_a_noop(db, session_factory, clock, catalog):
    await self_report(db, clock, catalog["open_checklist"], date(2024, 1, 10))

    first = await sweep_on(session_factory, clock, date(2024, 1, 14))
    locked_at = (await load_approval(session_factory, catalog["open_checklist"], date(2024, 1, 10))).locked_at
    second = await sweep_on(session_factory, clock, date(2024, 1, 15))

    assert first.invalidated_count == 1
    assert second.invalidated_count == 0
    assert second.cascaded_count == 0
    record = await load_approval(session_factory, catalog["open_checklist"], date(2024, 1, 10))
    assert record.locked_at == locked_at


async def test_failed_cascade_rolls_back_its_lock_and_is_retried(
    db, session_factory, clock, catalog, monkeypatch
):
    broken = catalog["open_checklist"]
    healthy = catalog["deep_clean"]
    await self_report(db, clock, broken, date(2024, 1, 10))
    await self_report(db, clock, healthy, date(2024, 1, 10))

    original = sweeper_module.MonthlyTrackingStore.set_day

    async def flaky_set_day(self, item_id, *args, **kwargs):
        if item_id == broken:
            raise PersistenceError()
        return await original(self, item_id, *args, **kwargs)

    monkeypatch.setattr(sweeper_module.MonthlyTrackingStore, "set_day", flaky_set_day)

    result = await sweep_on(session_factory, clock, date(2024, 1, 14))

    assert result.invalidated_count == 1
    assert result.cascaded_count == 1
    assert (await load_tracker(session_factory, healthy)).daily_checks[9] is False
    # the lock went down together with the failed cascade
    record = await load_approval(session_factory, broken, date(2024, 1, 10))
    assert record.is_locked is False
    assert record.employee_checked is True
    assert (await load_tracker(session_factory, broken)).daily_checks[9] is True

    monkeypatch.undo()
    retry = await sweep_on(session_factory, clock, date(2024, 1, 15))

    assert retry.invalidated_count == 1
    assert retry.cascaded_count == 1
    record = await load_approval(session_factory, broken, date(2024, 1, 10))
    assert record.is_locked is True
    assert record.employee_checked is False
    tracker = await load_tracker(session_factory, broken)
    assert tracker.daily_checks[9] is False
    assert tracker.score_achieved == 0
    assert (await load_total(session_factory)).total_score == 0


async def test_record_countersigned_after_selection_is_left_alone(
    db, session_factory, clock, catalog, monkeypatch
):
    item = catalog["open_checklist"]
    await self_report(db, clock, item, date(2024, 1, 10))

    original = DeadlineSweeper._expired_ids

    async def countersign_then_list(self, guard, today):
        ids = await original(self, guard, today)
        async with session_factory() as other:
            await ApprovalRecordStore(other, clock).upsert(
                item, STAFF, STORE, date(2024, 1, 10), {Column.CHT_CHECKED: True})
            await other.commit()
        return ids

    monkeypatch.setattr(DeadlineSweeper, "_expired_ids", countersign_then_list)

    result = await sweep_on(session_factory, clock, date(2024, 1, 14))

    assert result.invalidated_count == 0
    record = await load_approval(session_factory, item, date(2024, 1, 10))
    assert record.is_locked is False
    assert record.employee_checked is True
    assert (await load_tracker(session_factory, item)).daily_checks[9] is True


async def test_sweep_without_tracker_creates_cleared_one(db, session_factory, clock, catalog):
    item = catalog["inventory"]
    await ApprovalRecordStore(db, clock).upsert(
        item, STAFF, STORE, date(2024, 1, 10), {Column.EMPLOYEE_CHECKED: True})
    await db.commit()

    result = await sweep_on(session_factory, clock, date(2024, 1, 14))

    assert result.cascaded_count == 1
    tracker = await load_tracker(session_factory, item)
    assert tracker.daily_checks == [False] * 31
    assert tracker.classification == "KHONG_DAT"
