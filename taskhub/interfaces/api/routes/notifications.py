"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, WebSocket, status
from sqlalchemy.orm import Session

from taskhub.application.use_cases.notifications import (
    count_unread_notifications,
    list_notifications,
    mark_notification_read,
)
from taskhub.domain.entities import User
from taskhub.domain.exceptions import RecordNotFound
from taskhub.infrastructure.database import get_db
from taskhub.infrastructure.notifications import NotificationRouter
from taskhub.infrastructure.notifications.gateway import UNREAD_COUNT
from taskhub.interfaces.api.dependencies import (
    get_current_active_user,
    get_notification_router,
)
from taskhub.interfaces.api.schemas import NotificationRead, UnreadCountRead

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
def read_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[NotificationRead]:
    """Return the notifications of the authenticated user, newest first."""

    notifications = list_notifications(db, user_id=current_user.id)
    return [NotificationRead.model_validate(item) for item in notifications]


@router.get("/unread-count", response_model=UnreadCountRead)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnreadCountRead:
    return UnreadCountRead(count=count_unread_notifications(db, user_id=current_user.id))


@router.patch("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    notification_router: NotificationRouter = Depends(get_notification_router),
) -> NotificationRead:
    """Mark a notification as read and refresh the user's open websockets."""

    try:
        notification = mark_notification_read(
            db, user_id=current_user.id, notification_id=notification_id
        )
    except RecordNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    count = count_unread_notifications(db, user_id=current_user.id)
    notification_router.notify_user(
        current_user.id, UNREAD_COUNT, {"count": count}, enrich=False
    )
    return NotificationRead.model_validate(notification)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    await websocket.app.state.notification_hub.gateway.serve(websocket)
