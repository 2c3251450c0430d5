"""
Pytest fixtures for the checklist service test suite.

Every test gets its own file-backed SQLite database (through aiosqlite)
with the schema created from the models, a pinned clock, and a small
seeded catalog.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./checklist_test.db")

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from checklist_service.core.clock import FixedClock
from checklist_service.core.roles import Caller, Role
from checklist_service.database import Base
from checklist_service.models import approval, monthly, score  # noqa: F401
from checklist_service.models.catalog import ChecklistItem, DetailCategory


STAFF_ID = "emp-001"
STORE_ID = "store-hcm-01"


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'checklist.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 10, 9, 0, tzinfo=timezone.utc))


# =============================================================================
# Catalog fixtures
# =============================================================================


@pytest.fixture
async def catalog(db):
    """
    daily:    item "open_checklist"  score 10, no override (baseline 26)
    daily:    item "cash_count"      score 10, criteria baseline 20, thresholds A9/B6/C4
    weekly:   item "deep_clean"      score 5, item baseline 4
    monthly:  item "inventory"       score 5, no baseline
    """
    daily = DetailCategory(name="Daily", category_type="daily", order=1)
    strict = DetailCategory(
        name="Daily strict",
        category_type="daily",
        order=2,
        classification_criteria={"thresholds": {"A": 9, "B": 6, "C": 4}, "baseline": 20},
    )
    weekly = DetailCategory(name="Weekly", category_type="weekly", order=3)
    monthly_cat = DetailCategory(name="Monthly", category_type="monthly", order=4)
    db.add_all([daily, strict, weekly, monthly_cat])
    await db.flush()

    items = {
        "open_checklist": ChecklistItem(category_id=daily.id, item_number=1, name="Opening checklist", score=10),
        "cash_count": ChecklistItem(category_id=strict.id, item_number=2, name="Cash count", score=10),
        "deep_clean": ChecklistItem(category_id=weekly.id, item_number=3, name="Deep clean", score=5, baseline=4),
        "inventory": ChecklistItem(category_id=monthly_cat.id, item_number=4, name="Inventory", score=5),
    }
    db.add_all(items.values())
    await db.commit()
    return {name: item.id for name, item in items.items()}


# =============================================================================
# Callers
# =============================================================================


@pytest.fixture
def employee():
    return Caller(role=Role.EMPLOYEE, subject_id=STAFF_ID, store_ids=(STORE_ID,))


@pytest.fixture
def cht():
    return Caller(role=Role.CHT, subject_id="cht-001", store_ids=(STORE_ID,))


@pytest.fixture
def asm():
    return Caller(role=Role.ASM, subject_id="asm-001", store_ids=(STORE_ID, "store-hcm-02"))
