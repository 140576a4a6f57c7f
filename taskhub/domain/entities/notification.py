"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationType(str, Enum):
    """Kinds of domain events that produce notifications."""

    NEW_TASK = "NEW_TASK"
    UPDATE_TASK = "UPDATE_TASK"
    DELETE_TASK = "DELETE_TASK"
    NEW_USER = "NEW_USER"
    TASK_ASSIGNED = "TASK_ASSIGNED"


class NotificationTitle(str, Enum):
    """Default titles shown for each notification type."""

    NEW_TASK = "New task"
    UPDATE_TASK = "Task updated"
    DELETE_TASK = "Task deleted"
    NEW_USER = "New user"
    TASK_ASSIGNED = "Task assigned"

    @classmethod
    def for_type(cls, notification_type: NotificationType) -> str:
        return cls[notification_type.name].value


@dataclass
class Notification:
    """Information message delivered to a specific user."""

    id: str | None
    destination_user_id: str
    type: NotificationType
    title: str
    message: str
    task_id: str | None = None
    read: bool = False
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.destination_user_id:
            raise ValueError("Notification requires a destination user id")
        if not isinstance(self.type, NotificationType):
            self.type = NotificationType(self.type)

    def mark_read(self) -> None:
        """Flag the notification as read. Applying it again has no effect."""

        self.read = True


__all__ = ["Notification", "NotificationTitle", "NotificationType"]
