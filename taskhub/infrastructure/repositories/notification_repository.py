"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Iterable

from sqlalchemy.orm import Session

from taskhub.domain.entities import Notification
from taskhub.infrastructure.models import NotificationModel
from taskhub.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Provide storage operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_user(self, user_id: str) -> Sequence[Notification]:
        """Return notifications addressed to ``user_id``, newest first."""

        query = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.destination_user_id == user_id)
            .order_by(NotificationModel.created_at.desc())
        )
        return [self._to_entity(model) for model in query.all()]

    def count_unread(self, user_id: str) -> int:
        return (
            self.session.query(NotificationModel)
            .filter(NotificationModel.destination_user_id == user_id)
            .filter(NotificationModel.read.is_(False))
            .count()
        )

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        self._apply_entity_to_model(model, notification)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def create_many(self, notifications: Iterable[Notification]) -> list[Notification]:
        models = []
        for notification in notifications:
            model = NotificationModel()
            self._apply_entity_to_model(model, notification)
            models.append(model)
        if not models:
            return []
        self.session.add_all(models)
        self.session.commit()
        for model in models:
            self.session.refresh(model)
        return [self._to_entity(model) for model in models]

    def mark_as_read(self, notification_id: str, *, user_id: str) -> Notification | None:
        """Set ``read`` on the user's notification, returning ``None`` if absent."""

        model = self._get_model_for_user(notification_id, user_id)
        if model is None:
            return None
        if not model.read:
            model.read = True
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        return self._to_entity(model)

    def _get_model_for_user(self, notification_id: str, user_id: str) -> NotificationModel | None:
        return (
            self.session.query(NotificationModel)
            .filter(NotificationModel.id == notification_id)
            .filter(NotificationModel.destination_user_id == user_id)
            .first()
        )

    @staticmethod
    def _apply_entity_to_model(model: NotificationModel, notification: Notification) -> None:
        if notification.id:
            model.id = notification.id
        model.destination_user_id = notification.destination_user_id
        model.task_id = notification.task_id
        model.type = notification.type
        model.title = notification.title
        model.message = notification.message
        model.read = notification.read
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            destination_user_id=model.destination_user_id,
            task_id=model.task_id,
            type=model.type,
            title=model.title,
            message=model.message,
            read=bool(model.read),
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["NotificationRepository"]
