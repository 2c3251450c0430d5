# checklist_service/models/approval.py
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey, Index, false
from checklist_service.database import Base, active_row_clause

class ApprovalRecord(Base):
    """Per-day sign-off for one item and one staff member (Sheet 1)."""
    __tablename__ = "approval_records"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("checklist_items.id"), nullable=False)
    staff_id = Column(String, nullable=False, index=True)
    store_id = Column(String, nullable=False)
    assessment_date = Column(Date, nullable=False)

    employee_checked = Column(Boolean, nullable=False, default=False, server_default=false())
    employee_checked_at = Column(DateTime(timezone=True), nullable=True)
    cht_checked = Column(Boolean, nullable=False, default=False, server_default=false())
    cht_checked_at = Column(DateTime(timezone=True), nullable=True)
    asm_checked = Column(Boolean, nullable=False, default=False, server_default=false())
    asm_checked_at = Column(DateTime(timezone=True), nullable=True)

    deadline_date = Column(Date, nullable=True)  # set on first insert only
    is_locked = Column(Boolean, nullable=False, default=False, server_default=false())
    locked_at = Column(DateTime(timezone=True), nullable=True)

    implementation_issues = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_approval_item_staff_date",
            "item_id", "staff_id", "assessment_date",
            unique=True,
            postgresql_where=active_row_clause(),
            sqlite_where=active_row_clause(),
        ),
        Index("ix_approval_sweep", "deadline_date", "is_locked"),
    )
