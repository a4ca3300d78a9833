"""Scheduling outcome delivery tasks."""

import logging
from typing import Any

import httpx

from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def post_outcome(url: str, payload: dict[str, Any], timeout: float = 10.0) -> int:
    """POST one outcome payload as JSON. Returns the response status code."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(url, json=payload)
        response.raise_for_status()
        return response.status_code


@celery_app.task(name="app.tasks.notifications.deliver_scheduling_outcome")
def deliver_scheduling_outcome(payload: dict) -> dict:
    """
    Deliver a scheduling outcome to the configured webhook.

    Args:
        payload: SchedulingOutcome dumped in JSON mode

    Returns:
        Dict describing the delivery
    """
    import asyncio

    from app.config import get_settings

    settings = get_settings()
    appointment_id = payload.get("appointment_id")
    outcome_type = payload.get("outcome_type")

    if not settings.notification_webhook_url:
        logger.info(
            f"No notification webhook configured; outcome {outcome_type} "
            f"for appointment {appointment_id} logged only"
        )
        return {"delivered": False, "reason": "no_webhook"}

    try:
        status_code = asyncio.run(post_outcome(settings.notification_webhook_url, payload))
    except httpx.HTTPError as e:
        logger.error(f"Failed to deliver outcome {outcome_type} for appointment {appointment_id}: {e}")
        if isinstance(e, httpx.HTTPStatusError):
            logger.error(f"   Response: {e.response.text}")
        return {"delivered": False, "reason": str(e)}

    logger.info(f"Delivered outcome {outcome_type} for appointment {appointment_id} ({status_code})")
    return {"delivered": True, "status_code": status_code}
