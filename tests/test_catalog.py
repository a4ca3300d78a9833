"""Tests for catalog lookup - totals over services and add-ons."""

import logging
from decimal import Decimal
from uuid import uuid4

import pytest

from app.models import PriorityLevel
from app.services.catalog import apply_priority_surcharge, load_catalog, resolve_totals


class TestResolveTotals:
    """Tests for resolve_totals."""

    async def test_service_plus_two_add_ons(self, db, haircut, hot_towel, hair_wash):
        """30 min service plus two 15 min add-ons is 60 min; dropping one is 45."""
        catalog = await load_catalog(db)

        totals = resolve_totals(catalog, haircut.id, [], [hot_towel.id, hair_wash.id])
        assert totals.total_duration == 60
        assert totals.total_price == Decimal("360.00")

        totals = resolve_totals(catalog, haircut.id, [], [hot_towel.id])
        assert totals.total_duration == 45
        assert totals.total_price == Decimal("310.00")

    async def test_additional_services_are_summed(self, db, haircut, beard_trim):
        """Additional services add their duration and price."""
        catalog = await load_catalog(db)

        totals = resolve_totals(catalog, haircut.id, [beard_trim.id])

        assert totals.total_duration == 50
        assert totals.total_price == Decimal("400.00")

    async def test_unknown_ids_contribute_nothing(self, db, haircut, caplog):
        """Unknown ids are logged and treated as zero, the lookup still succeeds."""
        catalog = await load_catalog(db)
        ghost = uuid4()

        with caplog.at_level(logging.WARNING, logger="app.services.catalog"):
            totals = resolve_totals(catalog, haircut.id, [], [ghost])

        assert totals.total_duration == 30
        assert totals.missing_ids == (ghost,)
        assert "Catalog anomaly" in caplog.text

    async def test_inactive_items_are_not_in_catalog(self, db, haircut, hot_towel):
        """Inactive add-ons count as missing."""
        hot_towel.is_active = False
        await db.commit()

        catalog = await load_catalog(db)
        totals = resolve_totals(catalog, haircut.id, [], [hot_towel.id])

        assert hot_towel.id not in catalog.add_ons
        assert totals.total_duration == 30
        assert totals.missing_ids == (hot_towel.id,)


class TestPrioritySurcharge:
    """Tests for apply_priority_surcharge."""

    def test_urgent_pays_fee(self):
        assert apply_priority_surcharge(
            Decimal("250"), PriorityLevel.URGENT, Decimal("100")
        ) == Decimal("350")

    @pytest.mark.parametrize("priority", ["low", "normal", "high"])
    def test_other_priorities_pay_base_price(self, priority):
        assert apply_priority_surcharge(Decimal("250"), priority, Decimal("100")) == Decimal("250")
