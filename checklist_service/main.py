from fastapi import FastAPI
from checklist_service.config import settings
from checklist_service.database import engine, Base, AsyncSessionLocal
from checklist_service.core.clock import SystemClock
from checklist_service.core.logging import configure_logging
from checklist_service.routers import checklist, health
from checklist_service.models import approval, catalog, monthly, score  # noqa: F401  register tables
from checklist_service.services.checklist import run_deadline_sweep
import asyncio
import logging
from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)

app = FastAPI(title="Store Checklist Service", version="1.0")

# Include Routers
app.include_router(health.router)
app.include_router(checklist.router)


async def sweep_forever(interval_minutes: int):
    clock = SystemClock()
    while True:
        try:
            await run_deadline_sweep(AsyncSessionLocal, clock, settings.DEFAULT_DAILY_BASELINE)
        except Exception:
            logger.exception("Scheduled deadline sweep failed")
        await asyncio.sleep(interval_minutes * 60)


# Create DB Tables (for demo only — use Alembic in prod)
@app.on_event("startup")
async def startup_event():
    configure_logging(settings.LOG_LEVEL)
    # create tables (async). ignore duplicate-object errors from previous partial runs.
    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except sa_exc.IntegrityError as e:
            msg = str(getattr(e, "orig", e))
            if "duplicate key value violates unique constraint" in msg or "already exists" in msg:
                logging.warning("Ignored duplicate DDL error during create_all: %s", msg)
            else:
                raise

    if settings.SWEEP_INTERVAL_MINUTES > 0:
        app.state.sweep_task = asyncio.create_task(sweep_forever(settings.SWEEP_INTERVAL_MINUTES))
        logger.info("Deadline sweep scheduled every %s minutes", settings.SWEEP_INTERVAL_MINUTES)


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "sweep_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Deadline sweep loop stopped")

@app.get("/")
def read_root():
    return {"message": "Welcome to the Store Checklist Service"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("checklist_service.main:app", host="0.0.0.0", port=8000, reload=True)
