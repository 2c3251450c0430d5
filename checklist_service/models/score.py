# checklist_service/models/score.py
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, Index, false
from checklist_service.database import Base, active_row_clause

class EmployeeMonthlyScore(Base):
    __tablename__ = "employee_monthly_scores"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(String, nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    total_score = Column(Float, nullable=False, default=0.0)
    final_classification = Column(String, nullable=False)  # A, B, C, D

    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_score_staff_period",
            "staff_id", "month", "year",
            unique=True,
            postgresql_where=active_row_clause(),
            sqlite_where=active_row_clause(),
        ),
    )
