# checklist_service/models/monthly.py
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, Index, JSON, false
from sqlalchemy.dialects.postgresql import ARRAY
from checklist_service.database import Base, active_row_clause

DAY_SLOTS = 31

# JSON everywhere, a native boolean array on PostgreSQL
DailyChecks = JSON().with_variant(ARRAY(Boolean), "postgresql")


class MonthlyTrackingRecord(Base):
    """31-slot day tracker for one item, one staff member and one month (Sheet 2)."""
    __tablename__ = "monthly_tracking_records"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("checklist_items.id"), nullable=False)
    staff_id = Column(String, nullable=False, index=True)
    store_id = Column(String, nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    # index d is calendar day d + 1
    daily_checks = Column(DailyChecks, nullable=False)

    successful_completions = Column(Integer, nullable=True)
    achievement_percentage = Column(Float, nullable=True)
    score_achieved = Column(Float, nullable=True)
    classification = Column(String, nullable=True)  # A, B, C, KHONG_DAT
    implementation_issues_count = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_monthly_item_staff_period",
            "item_id", "staff_id", "month", "year",
            unique=True,
            postgresql_where=active_row_clause(),
            sqlite_where=active_row_clause(),
        ),
    )
