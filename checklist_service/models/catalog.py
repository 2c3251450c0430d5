# checklist_service/models/catalog.py
from sqlalchemy import Column, Integer, String, Text, Float, Boolean, DateTime, ForeignKey, JSON, func, false
from sqlalchemy.orm import relationship
from checklist_service.database import Base

class DetailCategory(Base):
    __tablename__ = "detail_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category_type = Column(String, nullable=False)  # daily, weekly, monthly
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    # {"thresholds": {"A": 8, "B": 5, "C": 3}, "baseline": 26}
    classification_criteria = Column(JSON, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())

    items = relationship("ChecklistItem", back_populates="category")


class ChecklistItem(Base):
    __tablename__ = "checklist_items"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("detail_categories.id"), nullable=False)
    item_number = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False)
    score = Column(Float, nullable=False)       # max points
    baseline = Column(Integer, nullable=True)   # expected occurrences, weekly/monthly items
    owner = Column(String, nullable=False, default="employee")  # employee or cht
    task_type = Column(String, nullable=True)   # shift tag
    evaluator = Column(String, nullable=True)
    scope = Column(String, nullable=True)
    time_frame = Column(String, nullable=True)
    penalty_level_1 = Column(Text, nullable=True)
    penalty_level_2 = Column(Text, nullable=True)
    penalty_level_3 = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("DetailCategory", back_populates="items", lazy="joined")
