# checklist_service/database.py
from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from checklist_service.config import settings

# Predicate shared by the partial unique indexes and the ON CONFLICT targets.
# Both sides must render identically or SQLite refuses the conflict target.
ACTIVE_ROW = "is_deleted = false"

engine = create_async_engine(settings.effective_database_url, echo=settings.DB_ECHO)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


def active_row_clause():
    return text(ACTIVE_ROW)


def upsert_insert(db: AsyncSession, model):
    """Dialect-specific INSERT that supports ON CONFLICT for the session's bind."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"No native upsert for dialect {dialect!r}")
