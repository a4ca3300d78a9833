"""Maintenance tasks."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.models import FunctionTrace
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def delete_traces_before(db: AsyncSession, cutoff: datetime) -> int:
    """Delete function traces created before the cutoff and commit. Returns the count."""
    result = await db.execute(delete(FunctionTrace).where(FunctionTrace.created_at < cutoff))
    await db.commit()
    return result.rowcount


@celery_app.task(name="app.tasks.cleanup.cleanup_old_function_traces")
def cleanup_old_function_traces(days_to_keep: int | None = None) -> dict:
    """
    Delete function traces older than the retention window.

    Scheduled nightly by beat so the traces table does not grow without bound.

    Args:
        days_to_keep: Days of traces to retain (default: trace_retention_days)

    Returns:
        Dict with the deleted count and the cutoff used
    """
    settings = get_settings()
    days = settings.trace_retention_days if days_to_keep is None else days_to_keep
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)

    async def _cleanup() -> int:
        # Worker processes get their own engine per run
        engine = create_async_engine(settings.database_url)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            async with session_factory() as db:
                return await delete_traces_before(db, cutoff)
        finally:
            await engine.dispose()

    deleted = asyncio.run(_cleanup())
    logger.info(f"Cleaned up {deleted} function traces older than {days} days")
    return {"deleted_count": deleted, "cutoff_date": cutoff.isoformat()}
