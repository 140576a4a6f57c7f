"""Realtime notification delivery for the infrastructure layer."""

from .gateway import SessionGateway
from .hub import NotificationHub, build_notification_hub
from .handshake import AuthHandshake, extract_credential
from .registry import Connection, ConnectionRegistry, ConnectionState
from .router import NotificationRouter
from .serialization import serialize_notification
from .store import NotificationStore, SessionFactory, UserRoleDirectory

__all__ = [
    "AuthHandshake",
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "NotificationHub",
    "NotificationRouter",
    "NotificationStore",
    "SessionFactory",
    "SessionGateway",
    "UserRoleDirectory",
    "build_notification_hub",
    "extract_credential",
    "serialize_notification",
]
