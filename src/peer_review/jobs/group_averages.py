"""Background scheduler rebuilding cached group averages."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI

from ..core.config import get_settings
from ..core.database import SessionLocal
from ..services.group_service import refresh_all_group_averages

logger = logging.getLogger(__name__)

_scheduler = AsyncIOScheduler(timezone="UTC")


async def _execute_refresh() -> None:
    session = SessionLocal()
    try:
        refreshed = refresh_all_group_averages(session)
        session.commit()
        logger.info("group averages refreshed for %d groups", refreshed)
    except Exception:  # pragma: no cover - safeguard for background job
        session.rollback()
        logger.exception("group averages refresh failed")
        raise
    finally:
        session.close()


def register_scheduler(app: FastAPI) -> None:
    """Attach APScheduler lifecycle hooks to the FastAPI app."""

    settings = get_settings()

    @app.on_event("startup")
    async def start_scheduler() -> None:
        if not settings.scheduler_enabled or _scheduler.running:
            return
        _scheduler.add_job(
            _execute_refresh,
            CronTrigger(hour=settings.averages_refresh_hour, minute=0),
            id="group_averages_refresh",
            replace_existing=True,
            misfire_grace_time=3600,
        )
        _scheduler.start()
        logger.info("group averages scheduler started")

    @app.on_event("shutdown")
    async def shutdown_scheduler() -> None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
            logger.info("group averages scheduler stopped")
