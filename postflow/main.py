"""FastAPI application: lifecycle, routes, scheduler."""
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from postflow.db import create_tables, init_db
from postflow.routes import (
    analytics_router,
    generate_router,
    media_router,
    prompt_templates_router,
    publish_router,
    storage_router,
)
from postflow.routes.publish import set_scheduler
from postflow.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: logging, DB tables, scheduler. Shutdown: scheduler."""
    setup_logging()
    init_db()
    try:
        await create_tables()
    except Exception as e:
        logger.warning("create_tables_failed", error=str(e))
    scheduler = AsyncIOScheduler()
    scheduler.start()
    set_scheduler(scheduler)
    yield
    scheduler.shutdown(wait=False)


app = FastAPI(
    title="Postflow",
    description="AI social content generation and Instagram publishing",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(generate_router)
app.include_router(prompt_templates_router)
app.include_router(media_router)
app.include_router(publish_router)
app.include_router(storage_router)
app.include_router(analytics_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
