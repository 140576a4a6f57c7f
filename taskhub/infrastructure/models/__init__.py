"""ORM models used by the application infrastructure."""

from .role import RoleModel, user_role_table
from .user import UserModel
from .notification import NotificationModel

__all__ = [
    "RoleModel",
    "user_role_table",
    "UserModel",
    "NotificationModel",
]
