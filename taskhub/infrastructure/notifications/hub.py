"""Assemble the realtime notification components for one process."""

from __future__ import annotations

from dataclasses import dataclass

from taskhub.infrastructure.security import decode_access_token

from .gateway import SessionGateway
from .handshake import AuthHandshake, CredentialVerifier
from .registry import ConnectionRegistry
from .router import NotificationRouter
from .store import NotificationStore, SessionFactory, UserRoleDirectory


@dataclass
class NotificationHub:
    """Explicitly wired notification components shared through ``app.state``.

    The registry is in-memory, so running several API processes needs an
    external pub/sub to reach connections held by the other processes.
    """

    registry: ConnectionRegistry
    router: NotificationRouter
    store: NotificationStore
    users: UserRoleDirectory
    handshake: AuthHandshake
    gateway: SessionGateway


def build_notification_hub(
    session_factory: SessionFactory,
    *,
    verify_credential: CredentialVerifier = decode_access_token,
) -> NotificationHub:
    registry = ConnectionRegistry()
    router = NotificationRouter(registry)
    store = NotificationStore(session_factory)
    users = UserRoleDirectory(session_factory)
    handshake = AuthHandshake(
        registry,
        verify_credential=verify_credential,
        lookup_user_roles=users.lookup_user_roles,
    )
    gateway = SessionGateway(
        registry=registry, handshake=handshake, router=router, store=store
    )
    return NotificationHub(
        registry=registry,
        router=router,
        store=store,
        users=users,
        handshake=handshake,
        gateway=gateway,
    )


__all__ = ["NotificationHub", "build_notification_hub"]
