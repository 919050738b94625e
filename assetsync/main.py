# assetsync/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from assetsync.core.config import get_settings
from assetsync.core.logging_config import configure_logging
from assetsync.routes import health, sync
from assetsync.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if settings.SCHEDULER_ENABLED:
        await start_scheduler()
    else:
        logger.info("Sync housekeeping scheduler is disabled. Set SCHEDULER_ENABLED=true to enable")

    try:
        yield  # This is where the app runs
    finally:
        if settings.SCHEDULER_ENABLED:
            await stop_scheduler()


app = FastAPI(
    title="AssetSync",
    lifespan=lifespan
)

app.include_router(health.router)
app.include_router(sync.router)
