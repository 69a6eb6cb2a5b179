"""FastAPI application entry point."""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from web.deps import get_config, get_scheduler
from web.routes import admin, reports

logger = structlog.get_logger()


def _scheduler_wanted() -> bool:
    """Config switch, overridable with FISHING_SCHEDULER=0 for extra web workers."""
    if os.getenv("FISHING_SCHEDULER", "1") == "0":
        return False
    return get_config().scheduler.enabled


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if _scheduler_wanted():
        scheduler = get_scheduler()
        scheduler.start()
    logger.info("web.startup", scheduler=bool(scheduler))
    yield
    if scheduler:
        scheduler.stop()
    logger.info("web.shutdown")


app = FastAPI(
    title="Fishing Forecast",
    version="0.1.0",
    lifespan=lifespan,
)

frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(reports.router)
app.include_router(admin.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
