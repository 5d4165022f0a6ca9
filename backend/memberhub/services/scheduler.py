"""Background scheduler that sweeps expired sessions."""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from memberhub.services.sessions import SqlSessionStore

logger = logging.getLogger(__name__)

SESSION_CLEANUP_JOB_ID = "purge-expired-sessions"


def create_scheduler() -> AsyncIOScheduler:
    return AsyncIOScheduler()


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def schedule_session_cleanup_job(scheduler: AsyncIOScheduler, store: SqlSessionStore, interval_seconds: int) -> None:
    trigger = IntervalTrigger(seconds=interval_seconds)
    scheduler.add_job(
        purge_expired_sessions,
        trigger=trigger,
        id=SESSION_CLEANUP_JOB_ID,
        args=[store],
        replace_existing=True,
    )
    logger.info("Scheduled expired session cleanup every %s seconds", interval_seconds)


async def purge_expired_sessions(store: SqlSessionStore) -> int:
    try:
        removed = await store.purge_expired()
    except Exception as exc:
        logger.exception("Failed to purge expired sessions: %s", exc)
        return 0
    if removed:
        logger.info("Purged %d expired session(s)", removed)
    return removed
