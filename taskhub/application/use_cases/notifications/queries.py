"""Read and acknowledge notifications on behalf of the authenticated user."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from taskhub.domain.entities import Notification
from taskhub.domain.exceptions import RecordNotFound
from taskhub.infrastructure.repositories import NotificationRepository


def list_notifications(session: Session, *, user_id: str) -> Sequence[Notification]:
    """Return every notification addressed to ``user_id``, newest first."""

    return NotificationRepository(session).list_for_user(user_id)


def count_unread_notifications(session: Session, *, user_id: str) -> int:
    return NotificationRepository(session).count_unread(user_id)


def mark_notification_read(
    session: Session, *, user_id: str, notification_id: str
) -> Notification:
    """Mark the user's notification as read.

    A notification addressed to somebody else is reported exactly like a
    missing one.
    """

    notification = NotificationRepository(session).mark_as_read(
        notification_id, user_id=user_id
    )
    if notification is None:
        raise RecordNotFound(notification_id)
    return notification


__all__ = [
    "count_unread_notifications",
    "list_notifications",
    "mark_notification_read",
]
