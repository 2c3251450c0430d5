from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List, Optional
import logging
from checklist_service.config import settings
from checklist_service.database import get_db, AsyncSessionLocal
from checklist_service.core.auth import get_current_caller, get_current_asm
from checklist_service.core.clock import Clock, SystemClock
from checklist_service.core.exceptions import (
    ChecklistError, ColumnDeniedError, NotFoundError, PersistenceError, ValidationError,
)
from checklist_service.core.roles import Caller
from checklist_service.services.access import ColumnAccessGate
from checklist_service.services.checklist import ChecklistService, run_deadline_sweep
from checklist_service.schemas.checklist import (
    ApprovalResponse, ApprovalUpsert, ApprovalUpsertResponse, CategoryResponse,
    ItemResponse, ItemWithApproval, ItemWithMonthly, MonthlyDayUpsert,
    MonthlyDayUpsertResponse, MonthlyRecordResponse, MonthlyScoreResponse, SweepResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checklist", tags=["checklist"])


def get_clock() -> Clock:
    return SystemClock()


def get_session_factory():
    return AsyncSessionLocal


def get_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ChecklistService:
    return ChecklistService(
        db, clock,
        deadline_days=settings.APPROVAL_DEADLINE_DAYS,
        default_daily_baseline=settings.DEFAULT_DAILY_BASELINE,
    )


def to_http(e: ChecklistError) -> HTTPException:
    if isinstance(e, ColumnDeniedError):
        return HTTPException(403, {"error": e.message, "denied_columns": e.denied_columns})
    if isinstance(e, ValidationError):
        return HTTPException(400, e.message)
    if isinstance(e, NotFoundError):
        return HTTPException(404, e.message)
    if isinstance(e, PersistenceError):
        return HTTPException(500, "Failed to save")
    return HTTPException(500, "Internal error")


def _period(month: Optional[int], year: Optional[int], clock: Clock):
    today = clock.today()
    return month or today.month, year or today.year


@router.get("/items", response_model=List[ItemWithApproval])
async def get_items(
    date: Optional[date] = None,
    service: ChecklistService = Depends(get_service),
    caller: Caller = Depends(get_current_caller)
):
    logger.debug("Fetching checklist items subject=%s role=%s date=%s",
                 caller.subject_id, caller.role.value, date)
    rows = await service.list_items_with_approval(caller, date)
    return [
        ItemWithApproval(
            **ItemResponse.model_validate(item).model_dump(),
            record=ApprovalResponse.model_validate(record) if record else None,
        )
        for item, record in rows
    ]


@router.get("/assessment-dates", response_model=List[date])
async def get_assessment_dates(
    service: ChecklistService = Depends(get_service),
    caller: Caller = Depends(get_current_caller)
):
    return await service.list_assessment_dates(caller)


@router.get("/detail-items", response_model=List[ItemWithMonthly])
async def get_detail_items(
    month: Optional[int] = None,
    year: Optional[int] = None,
    service: ChecklistService = Depends(get_service),
    clock: Clock = Depends(get_clock),
    caller: Caller = Depends(get_current_caller)
):
    month, year = _period(month, year, clock)
    try:
        rows = await service.list_items_with_monthly(caller, month, year)
    except ChecklistError as e:
        raise to_http(e)
    return [
        ItemWithMonthly(
            **ItemResponse.model_validate(item).model_dump(),
            record=MonthlyRecordResponse.model_validate(record) if record else None,
        )
        for item, record in rows
    ]


@router.get("/categories", response_model=List[CategoryResponse])
async def get_categories(
    service: ChecklistService = Depends(get_service),
    caller: Caller = Depends(get_current_caller)
):
    return await service.list_categories()


@router.get("/allowed-columns", response_model=List[str])
async def get_allowed_columns(caller: Caller = Depends(get_current_caller)):
    return [col.value for col in ColumnAccessGate.allowed_columns(caller.role)]


@router.get("/monthly-score", response_model=MonthlyScoreResponse)
async def get_monthly_score(
    month: Optional[int] = None,
    year: Optional[int] = None,
    staff_id: Optional[str] = None,
    service: ChecklistService = Depends(get_service),
    clock: Clock = Depends(get_clock),
    caller: Caller = Depends(get_current_caller)
):
    month, year = _period(month, year, clock)
    try:
        score = await service.get_monthly_score(caller, month, year, staff_id)
    except ChecklistError as e:
        raise to_http(e)
    if not score:
        raise HTTPException(404, "No score for this period yet.")
    return score


@router.post("/approvals", response_model=ApprovalUpsertResponse)
async def upsert_approval(
    body: ApprovalUpsert,
    service: ChecklistService = Depends(get_service),
    caller: Caller = Depends(get_current_caller)
):
    try:
        record = await service.upsert_approval(
            caller, body.item_id, body.assessment_date, body.columns,
            staff_id=body.staff_id, store_id=body.store_id,
        )
    except ChecklistError as e:
        raise to_http(e)
    return ApprovalUpsertResponse(success=True, record=ApprovalResponse.model_validate(record))


@router.post("/monthly-days", response_model=MonthlyDayUpsertResponse)
async def upsert_monthly_day(
    body: MonthlyDayUpsert,
    service: ChecklistService = Depends(get_service),
    caller: Caller = Depends(get_current_caller)
):
    try:
        record = await service.upsert_monthly_day(
            caller, body.item_id, body.month, body.year, body.day, body.checked,
            staff_id=body.staff_id, store_id=body.store_id,
        )
    except ChecklistError as e:
        raise to_http(e)
    return MonthlyDayUpsertResponse(success=True, record=MonthlyRecordResponse.model_validate(record))


@router.post("/sweep", response_model=SweepResponse)
async def sweep_deadlines(
    session_factory = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
    caller: Caller = Depends(get_current_asm)
):
    try:
        result = await run_deadline_sweep(session_factory, clock, settings.DEFAULT_DAILY_BASELINE)
    except ChecklistError as e:
        raise to_http(e)
    return SweepResponse(invalidated_count=result.invalidated_count, cascaded_count=result.cascaded_count)
