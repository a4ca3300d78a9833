"""Per barber/date serialization and store-failure mapping.

Every write that changes a barber's occupancy or queue for a day runs inside
``partition_lock``. Within one process the lock is an ``asyncio.Lock`` per
(barber, date); on PostgreSQL a transaction-scoped advisory lock also
serializes writers across processes. The advisory lock is released when
the transaction commits or rolls back.
"""

import asyncio
import hashlib
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.services.errors import ConflictError, SchedulingError, StoreUnavailableError

logger = logging.getLogger(__name__)

_partition_locks: "weakref.WeakValueDictionary[tuple[UUID, date], asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def partition_key(barber_id: UUID, day: date) -> int:
    """Signed 64-bit advisory lock key for a barber/date partition."""
    digest = hashlib.blake2b(f"{barber_id}:{day.isoformat()}".encode(), digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


def _local_lock(barber_id: UUID, day: date) -> asyncio.Lock:
    key = (barber_id, day)
    lock = _partition_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _partition_locks[key] = lock
    return lock


@asynccontextmanager
async def partition_lock(db: AsyncSession, barber_id: UUID, day: date) -> AsyncIterator[None]:
    """Hold the write lock for one barber's day.

    The caller commits or rolls back before leaving the block.
    """
    lock = _local_lock(barber_id, day)
    async with lock:
        if db.get_bind().dialect.name == "postgresql":
            await db.execute(select(func.pg_advisory_xact_lock(partition_key(barber_id, day))))
        yield


@asynccontextmanager
async def store_guard(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Bound store work by the configured timeout and map store failures.

    On any exception the transaction is rolled back, so nothing partial is
    committed. Timeouts and driver errors become StoreUnavailableError;
    unique or check violations become ConflictError. Anything else is
    re-raised unchanged.
    """
    settings = get_settings()
    try:
        async with asyncio.timeout(settings.store_timeout_seconds):
            yield
    except SchedulingError:
        await db.rollback()
        raise
    except TimeoutError as e:
        await db.rollback()
        logger.error(f"Store timed out during {operation} after {settings.store_timeout_seconds}s")
        raise StoreUnavailableError(f"Appointment store timed out during {operation}") from e
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Integrity violation during {operation}: {e.orig}")
        raise ConflictError(f"Concurrent change detected during {operation}") from e
    except DBAPIError as e:
        await db.rollback()
        logger.error(f"Store failure during {operation}: {e}")
        raise StoreUnavailableError(f"Appointment store failed during {operation}") from e
    except Exception:
        await db.rollback()
        raise
