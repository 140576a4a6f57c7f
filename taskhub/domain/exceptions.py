"""Errors raised by the realtime notification subsystem."""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for notification errors."""


class AuthFailure(NotificationError):
    """The connection could not be authenticated and must be closed."""


class MissingCredential(AuthFailure):
    def __init__(self) -> None:
        super().__init__("Missing credential")


class InvalidCredential(AuthFailure):
    """Malformed, expired or wrongly signed token.

    The message is deliberately generic whatever the underlying cause.
    """

    def __init__(self) -> None:
        super().__init__("Invalid credential")


class NotAuthenticated(NotificationError):
    def __init__(self) -> None:
        super().__init__("Not authenticated")


class RecordNotFound(NotificationError):
    """No notification with the given id belongs to the requesting user."""

    def __init__(self, notification_id: str | None = None) -> None:
        self.notification_id = notification_id
        super().__init__("Notification not found")


class DeliveryFailure(NotificationError):
    """A push could not be written to a connection."""

    def __init__(self, connection_id: str, event: str, cause: BaseException) -> None:
        self.connection_id = connection_id
        self.event = event
        self.cause = cause
        super().__init__(
            f"Failed to deliver '{event}' to connection {connection_id}: {cause}"
        )


class StoreFailure(NotificationError):
    """The notification store raised an error."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Failed to {operation}")


__all__ = [
    "AuthFailure",
    "DeliveryFailure",
    "InvalidCredential",
    "MissingCredential",
    "NotAuthenticated",
    "NotificationError",
    "RecordNotFound",
    "StoreFailure",
]
