"""Utility helpers to generate and dispatch domain notifications.

Every helper here is called from task or user business operations. None of
them raise: a failing store or socket is logged and the business operation
carries on.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.domain.entities import (
    Notification,
    NotificationTitle,
    NotificationType,
    Task,
    User,
)
from taskhub.infrastructure.notifications import NotificationRouter, serialize_notification
from taskhub.infrastructure.repositories import NotificationRepository, UserRepository
from taskhub.utils import now_in_app_timezone

logger = logging.getLogger(__name__)


def _build_notification(
    *,
    user_id: str,
    notification_type: NotificationType,
    message: str,
    task_id: str | None = None,
) -> Notification:
    return Notification(
        id=None,
        destination_user_id=user_id,
        task_id=task_id,
        type=notification_type,
        title=NotificationTitle.for_type(notification_type),
        message=message,
        read=False,
        created_at=now_in_app_timezone(),
    )


def notify_new_task(
    session: Session, router: NotificationRouter, *, task: Task
) -> Notification | None:
    """Tell the task owner about the new task; admins get a shadow copy."""

    try:
        saved = NotificationRepository(session).create(
            _build_notification(
                user_id=task.user_id,
                notification_type=NotificationType.NEW_TASK,
                message=f'You have been assigned a new task "{task.title}"',
                task_id=task.id,
            )
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error in notify_new_task for task %s", task.id)
        return None

    router.notify_event(
        NotificationType.NEW_TASK, serialize_notification(saved), task.user_id
    )
    return saved


def notify_task_update(
    session: Session, router: NotificationRouter, *, task: Task
) -> list[Notification]:
    """Record an update notification for every active user and push each one."""

    return _notify_every_user(
        session,
        router,
        notification_type=NotificationType.UPDATE_TASK,
        message=f'Task "{task.title}" has been updated',
        task_id=task.id,
    )


def notify_task_deletion(
    session: Session, router: NotificationRouter, *, task_id: str, task_title: str
) -> list[Notification]:
    """Record a deletion notification for every active user and push each one.

    The task row is gone by the time this runs, so the records keep no
    ``task_id``.
    """

    saved = _notify_every_user(
        session,
        router,
        notification_type=NotificationType.DELETE_TASK,
        message=f'Task "{task_title}" has been deleted',
    )
    logger.info("Created %s notifications for deleted task %s", len(saved), task_id)
    return saved


def notify_new_user(
    session: Session, router: NotificationRouter, *, user: User
) -> list[Notification]:
    """Inform every admin that ``user`` registered.

    One record is stored per admin; the realtime push is routed once to the
    admins currently connected, never to the new user.
    """

    message = f"New user {user.full_name} ({user.email}) registered"
    try:
        admin_ids = [
            admin_id
            for admin_id in UserRepository(session).list_admin_ids()
            if admin_id != user.id
        ]
        saved = NotificationRepository(session).create_many(
            _build_notification(
                user_id=admin_id,
                notification_type=NotificationType.NEW_USER,
                message=message,
            )
            for admin_id in admin_ids
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error notifying about new user %s", user.id)
        return []

    router.notify_event(
        NotificationType.NEW_USER,
        {
            "user_id": user.id,
            "type": NotificationType.NEW_USER.value,
            "title": NotificationTitle.NEW_USER.value,
            "message": message,
        },
        exclude_user_id=user.id,
    )
    return saved


def _notify_every_user(
    session: Session,
    router: NotificationRouter,
    *,
    notification_type: NotificationType,
    message: str,
    task_id: str | None = None,
) -> list[Notification]:
    try:
        user_ids = UserRepository(session).list_ids()
        saved = NotificationRepository(session).create_many(
            _build_notification(
                user_id=user_id,
                notification_type=notification_type,
                message=message,
                task_id=task_id,
            )
            for user_id in user_ids
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Error creating %s notifications", notification_type.value)
        return []

    for notification in saved:
        router.notify_user(
            notification.destination_user_id,
            notification_type,
            serialize_notification(notification),
        )
    return saved


__all__ = [
    "notify_new_task",
    "notify_new_user",
    "notify_task_deletion",
    "notify_task_update",
]
