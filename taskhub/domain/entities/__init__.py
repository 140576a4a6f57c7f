"""Domain entities exposed by the application."""

from .notification import Notification, NotificationTitle, NotificationType
from .role import Role, normalize_roles
from .task import Task
from .user import User, UserIdentity

__all__ = [
    "Notification",
    "NotificationTitle",
    "NotificationType",
    "Role",
    "normalize_roles",
    "Task",
    "User",
    "UserIdentity",
]
