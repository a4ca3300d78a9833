"""Tests for the store guard and partition keys."""

import asyncio
from datetime import date
from uuid import uuid4

import pytest

from app.config import get_settings
from app.models import Barber
from app.services import barber as barber_service
from app.services.errors import NotFoundError, StoreUnavailableError
from app.services.locking import partition_key, store_guard


class TestStoreGuard:
    """Rollback and error mapping around store work."""

    async def test_unexpected_error_rolls_back(self, db):
        with pytest.raises(RuntimeError, match="boom"):
            async with store_guard(db, "test"):
                db.add(Barber(id=uuid4(), name="Temp", is_active=True))
                await db.flush()
                raise RuntimeError("boom")

        assert not db.in_transaction()
        assert await barber_service.list_barbers(db) == []

    async def test_scheduling_error_passes_through(self, db):
        with pytest.raises(NotFoundError):
            async with store_guard(db, "test"):
                db.add(Barber(id=uuid4(), name="Temp", is_active=True))
                await db.flush()
                raise NotFoundError("gone")

        assert await barber_service.list_barbers(db) == []

    async def test_timeout_is_retryable(self, db, monkeypatch):
        monkeypatch.setattr(get_settings(), "store_timeout_seconds", 0.05)

        with pytest.raises(StoreUnavailableError) as exc_info:
            async with store_guard(db, "test"):
                await asyncio.sleep(1)

        assert exc_info.value.retryable is True
        assert "test" in str(exc_info.value)


class TestPartitionKey:
    """Advisory lock keys."""

    def test_stable_and_distinct(self):
        barber_id = uuid4()
        day = date(2026, 10, 19)

        assert partition_key(barber_id, day) == partition_key(barber_id, day)
        assert partition_key(barber_id, day) != partition_key(barber_id, date(2026, 10, 20))

    def test_fits_signed_bigint(self):
        key = partition_key(uuid4(), date(2026, 10, 19))
        assert -(2**63) <= key < 2**63
