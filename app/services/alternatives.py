"""Alternative barber finder.

When a barber is saturated, suggest other active barbers with at least one
free slot on the same day, soonest first. Pure read.
"""

import logging
from collections import defaultdict
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import BusinessHours, get_settings
from app.schemas.barber import AlternativeBarber
from app.services import availability as availability_service
from app.services import barber as barber_service
from app.services.tracing import traced

logger = logging.getLogger(__name__)


@traced(capture_args=["day", "duration", "exclude_barber_id", "limit"])
async def find_alternative_barbers(
    db: AsyncSession,
    day: date,
    duration: int,
    exclude_barber_id: UUID | None = None,
    limit: int | None = None,
    hours: BusinessHours | None = None,
) -> list[AlternativeBarber]:
    """Rank other barbers by their earliest available start time.

    Barbers on a day off or without any free slot are left out. Ties on time
    are broken by name. Returns at most ``limit`` suggestions.
    """
    settings = get_settings()
    limit = settings.alternative_barber_limit if limit is None else limit
    hours = hours or settings.business_hours

    barbers = [b for b in await barber_service.list_barbers(db) if b.id != exclude_barber_id]
    if not barbers or limit <= 0:
        return []

    barber_ids = [b.id for b in barbers]
    appointments = await availability_service.fetch_active_appointments(db, day, barber_ids)
    off = await availability_service.fetch_barbers_off(db, day, barber_ids)

    by_barber = defaultdict(list)
    for appt in appointments:
        by_barber[appt.barber_id].append(appt)

    candidates: list[AlternativeBarber] = []
    for b in barbers:
        if b.id in off:
            continue

        slots = availability_service.build_day_slots(
            b.id,
            day,
            duration,
            by_barber[b.id],
            hours=hours,
            fallback_duration=settings.slot_interval_minutes,
        )
        available = slots.available()
        if not available:
            continue

        candidates.append(
            AlternativeBarber(
                barber_id=b.id,
                barber_name=b.name,
                next_available_time=available[0].start_time,
                available_slot_count=len(available),
                current_load=len(by_barber[b.id]),
            )
        )

    candidates.sort(key=lambda c: (c.next_available_time, c.barber_name))
    logger.info(
        f"Found {len(candidates)} alternative barber(s) for {day} "
        f"(duration={duration}, excluding {exclude_barber_id})"
    )
    return candidates[:limit]
