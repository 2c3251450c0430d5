from pydantic import BaseModel, Field
from datetime import datetime, date
from typing import Optional, List, Dict


class ApprovalUpsert(BaseModel):
    item_id: int
    assessment_date: date
    # e.g. {"employee_checked": true}; only the caller's own column is accepted
    columns: Dict[str, bool] = Field(default_factory=dict)
    staff_id: Optional[str] = None   # reviewers write on behalf of staff
    store_id: Optional[str] = None


class MonthlyDayUpsert(BaseModel):
    item_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    day: int   # range depends on the month, checked by the service
    checked: bool
    staff_id: Optional[str] = None
    store_id: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    category_type: str
    description: Optional[str]
    order: int

    model_config = {"from_attributes": True}


class CategoryRef(BaseModel):
    id: int
    name: str
    category_type: str

    model_config = {"from_attributes": True}


class ItemResponse(BaseModel):
    id: int
    item_number: int
    name: str
    score: float
    baseline: Optional[int]
    owner: str
    task_type: Optional[str]
    evaluator: Optional[str]
    scope: Optional[str]
    time_frame: Optional[str]
    penalty_level_1: Optional[str]
    penalty_level_2: Optional[str]
    penalty_level_3: Optional[str]
    notes: Optional[str]
    order: int
    category: CategoryRef

    model_config = {"from_attributes": True}


class ApprovalResponse(BaseModel):
    id: int
    item_id: int
    staff_id: str
    store_id: str
    assessment_date: date
    employee_checked: bool
    employee_checked_at: Optional[datetime]
    cht_checked: bool
    cht_checked_at: Optional[datetime]
    asm_checked: bool
    asm_checked_at: Optional[datetime]
    deadline_date: Optional[date]
    is_locked: bool
    locked_at: Optional[datetime]
    implementation_issues: Optional[str]

    model_config = {"from_attributes": True}


class MonthlyRecordResponse(BaseModel):
    id: int
    item_id: int
    staff_id: str
    store_id: str
    month: int
    year: int
    daily_checks: List[bool]
    successful_completions: Optional[int]
    achievement_percentage: Optional[float]
    score_achieved: Optional[float]
    classification: Optional[str]
    implementation_issues_count: Optional[int]
    notes: Optional[str]

    model_config = {"from_attributes": True}


class ItemWithApproval(ItemResponse):
    record: Optional[ApprovalResponse] = None


class ItemWithMonthly(ItemResponse):
    record: Optional[MonthlyRecordResponse] = None


class ApprovalUpsertResponse(BaseModel):
    success: bool
    record: Optional[ApprovalResponse] = None


class MonthlyDayUpsertResponse(BaseModel):
    success: bool
    record: Optional[MonthlyRecordResponse] = None


class MonthlyScoreResponse(BaseModel):
    staff_id: str
    month: int
    year: int
    total_score: float
    final_classification: str

    model_config = {"from_attributes": True}


class SweepResponse(BaseModel):
    invalidated_count: int
    cascaded_count: int
