"""Notification history API."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from charityhub.app.api.dependencies import get_notification_center
from charityhub.app.core.utils import to_iso8601
from charityhub.app.exceptions import NotificationNotFoundError
from charityhub.app.middleware.rate_limit import RateLimitGuard
from charityhub.app.services.notifications import (
    Notification,
    NotificationCenter,
    NotificationType,
)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    duration: int
    timestamp: str
    read: bool
    action_label: Optional[str] = None

    @classmethod
    def from_notification(cls, n: Notification) -> "NotificationOut":
        return cls(
            id=n.id,
            type=n.type,
            title=n.title,
            message=n.message,
            duration=n.duration,
            timestamp=to_iso8601(n.timestamp),
            read=n.read,
            action_label=n.action.label if n.action else None,
        )


class NotificationListResponse(BaseModel):
    notifications: List[NotificationOut]
    unread_count: int


class ToastOut(NotificationOut):
    progress: Optional[float] = None


class NotificationCreate(BaseModel):
    """Create notification request."""

    type: NotificationType = NotificationType.INFO
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    duration: Optional[int] = Field(default=None, ge=0, le=3_600_000)


class NotificationCreated(BaseModel):
    id: str
    timestamp: str


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(default=50, ge=1, le=500),
    center: NotificationCenter = Depends(get_notification_center),
) -> NotificationListResponse:
    """Notification history, newest first."""
    return NotificationListResponse(
        notifications=[
            NotificationOut.from_notification(n) for n in center.notifications[:limit]
        ],
        unread_count=center.unread_count,
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=NotificationCreated,
    dependencies=[Depends(RateLimitGuard("STANDARD"))],
)
async def create_notification(
    body: NotificationCreate,
    center: NotificationCenter = Depends(get_notification_center),
) -> NotificationCreated:
    """Create a notification. Errors persist unless a duration is given."""
    if body.type == NotificationType.ERROR and body.duration is None:
        notification_id = await center.error(body.title, body.message)
    else:
        notification_id = await center.show(
            body.type, body.title, body.message, body.duration
        )
    notification = center.get(notification_id)
    return NotificationCreated(
        id=notification_id, timestamp=to_iso8601(notification.timestamp)
    )


@router.get("/toasts", response_model=List[ToastOut])
async def list_toasts(
    center: NotificationCenter = Depends(get_notification_center),
) -> List[ToastOut]:
    """Most recent unread notifications with their countdown progress."""
    return [
        ToastOut(
            **NotificationOut.from_notification(toast.notification).model_dump(),
            progress=toast.progress,
        )
        for toast in center.toasts()
    ]


@router.post("/mark-all-read")
async def mark_all_read(
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    updated = await center.mark_all_as_read()
    return {"updated": updated, "unread_count": center.unread_count}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    if not await center.mark_as_read(notification_id):
        raise NotificationNotFoundError(notification_id)
    return {"id": notification_id, "read": True, "unread_count": center.unread_count}


@router.post("/{notification_id}/action")
async def invoke_action(
    notification_id: str,
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    invoked = await center.invoke_action(notification_id)
    return {"id": notification_id, "invoked": invoked}


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_notification(
    notification_id: str,
    center: NotificationCenter = Depends(get_notification_center),
) -> None:
    if not await center.remove(notification_id):
        raise NotificationNotFoundError(notification_id)


@router.delete("")
async def clear_notifications(
    center: NotificationCenter = Depends(get_notification_center),
) -> dict:
    cleared = await center.clear_all()
    return {"cleared": cleared}
