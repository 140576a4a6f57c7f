from .notification import NotificationRead, UnreadCountRead

__all__ = ["NotificationRead", "UnreadCountRead"]
