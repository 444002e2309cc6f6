"""Signal publishing API."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from charityhub.app.api.dependencies import get_event_bridge, get_event_bus
from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_log_context, get_logger
from charityhub.app.middleware.rate_limit import RateLimitGuard
from charityhub.app.services.events import (
    EventBus,
    NotificationEventBridge,
    get_signal,
    parse_payload,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post("/samples", status_code=status.HTTP_202_ACCEPTED)
async def schedule_samples(
    request: Request,
    bridge: NotificationEventBridge = Depends(get_event_bridge),
) -> dict:
    """Schedule the demo notification sequence (debug mode only)."""
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not Found")
    scheduled = bridge.show_sample_notifications(request.app.state.scheduler)
    return {"scheduled": scheduled}


@router.post(
    "/{signal}",
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(RateLimitGuard("STANDARD"))],
)
async def publish_signal(
    signal: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    bus: EventBus = Depends(get_event_bus),
) -> dict:
    """Validate and publish a catalog signal.

    Raises:
        UnknownSignalError: 404 when the signal is not in the catalog
        InvalidSignalPayloadError: 422 when the payload fails its schema
    """
    resolved = get_signal(signal)
    parsed = parse_payload(resolved, payload)
    delivered = await bus.publish(resolved, parsed.to_wire())
    logger.info(
        f"Published signal to {delivered} subscribers",
        extra=get_log_context(signal=resolved.value),
    )
    return {"signal": resolved.value, "delivered": delivered}
