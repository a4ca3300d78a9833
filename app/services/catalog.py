"""Catalog lookup - resolve a service selection into total duration and price."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AddOn, PriorityLevel, Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogItem:
    """Price and duration of one service or add-on."""

    id: UUID
    name: str
    duration_minutes: int
    price: Decimal


@dataclass(frozen=True)
class CatalogSnapshot:
    """Active services and add-ons keyed by id."""

    services: dict[UUID, CatalogItem] = field(default_factory=dict)
    add_ons: dict[UUID, CatalogItem] = field(default_factory=dict)


@dataclass(frozen=True)
class BookingTotals:
    """Summed duration (minutes) and price of a selection."""

    total_duration: int
    total_price: Decimal
    missing_ids: tuple[UUID, ...] = ()


async def load_catalog(db: AsyncSession) -> CatalogSnapshot:
    """Read the active catalog from the store."""
    services_result = await db.execute(select(Service).where(Service.is_active.is_(True)))
    add_ons_result = await db.execute(select(AddOn).where(AddOn.is_active.is_(True)))

    return CatalogSnapshot(
        services={
            s.id: CatalogItem(s.id, s.name, s.duration_minutes, Decimal(s.price))
            for s in services_result.scalars()
        },
        add_ons={
            a.id: CatalogItem(a.id, a.name, a.duration_minutes, Decimal(a.price))
            for a in add_ons_result.scalars()
        },
    )


def resolve_totals(
    catalog: CatalogSnapshot,
    service_id: UUID,
    additional_service_ids: list[UUID] | None = None,
    add_on_ids: list[UUID] | None = None,
) -> BookingTotals:
    """Sum duration and price over the primary service, extras and add-ons.

    Ids missing from the active catalog contribute nothing. They are logged
    as a data-integrity anomaly and reported in ``missing_ids``; the booking
    itself goes ahead.
    """
    lookups = [(catalog.services, service_id)]
    lookups += [(catalog.services, sid) for sid in additional_service_ids or []]
    lookups += [(catalog.add_ons, aid) for aid in add_on_ids or []]

    duration = 0
    price = Decimal("0")
    missing: list[UUID] = []

    for items, item_id in lookups:
        item = items.get(item_id)
        if item is None:
            missing.append(item_id)
            continue
        duration += item.duration_minutes
        price += item.price

    if missing:
        logger.warning(
            f"Catalog anomaly: {len(missing)} selected item(s) not in active catalog: "
            f"{', '.join(str(m) for m in missing)}"
        )

    return BookingTotals(total_duration=duration, total_price=price, missing_ids=tuple(missing))


def apply_priority_surcharge(
    price: Decimal, priority: PriorityLevel | str, urgent_fee: Decimal
) -> Decimal:
    """Add the urgent fee to urgent bookings."""
    if PriorityLevel(priority) == PriorityLevel.URGENT:
        return price + urgent_fee
    return price
