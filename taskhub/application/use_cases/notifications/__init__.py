"""Public helpers for emitting and reading domain notifications."""

from .events import (
    notify_new_task,
    notify_new_user,
    notify_task_deletion,
    notify_task_update,
)
from .queries import (
    count_unread_notifications,
    list_notifications,
    mark_notification_read,
)

__all__ = [
    "notify_new_task",
    "notify_new_user",
    "notify_task_deletion",
    "notify_task_update",
    "count_unread_notifications",
    "list_notifications",
    "mark_notification_read",
]
