"""Authentication of incoming notification websockets."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from anyio import to_thread
from fastapi import WebSocket

from taskhub.domain.entities import Role, UserIdentity
from taskhub.domain.exceptions import InvalidCredential, MissingCredential

from .registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)

CredentialVerifier = Callable[[str], Mapping[str, Any]]
RoleLookup = Callable[[str], "Iterable[Role | str] | None"]


def extract_credential(websocket: WebSocket) -> str | None:
    """Return the bearer token sent with the websocket upgrade request.

    The ``token`` query parameter wins over headers because browsers cannot
    set custom headers on websocket requests.
    """

    token = websocket.query_params.get("token")
    if token:
        return token.strip() or None

    header_token = websocket.headers.get("x-auth-token")
    if header_token:
        return header_token.strip() or None

    authorization = websocket.headers.get("authorization", "")
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


class AuthHandshake:
    """Authenticate a connection once and record it in the registry."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        *,
        verify_credential: CredentialVerifier,
        lookup_user_roles: RoleLookup,
    ) -> None:
        self._registry = registry
        self._verify_credential = verify_credential
        self._lookup_user_roles = lookup_user_roles

    async def authenticate(self, connection: Connection, credential: str | None) -> UserIdentity:
        """Resolve the identity behind ``credential`` and register ``connection``.

        Raises :class:`MissingCredential` or :class:`InvalidCredential`; the
        caller is expected to close the connection in both cases.
        """

        if credential is None or not credential.strip():
            raise MissingCredential()

        try:
            claims = self._verify_credential(credential.strip())
        except Exception as exc:
            logger.debug("Credential verification failed: %s", exc)
            raise InvalidCredential() from exc

        subject = claims.get("sub") if isinstance(claims, Mapping) else None
        if not isinstance(subject, str) or not subject:
            raise InvalidCredential()

        roles = await self._resolve_roles(subject)
        identity = UserIdentity(id=subject, roles=tuple(roles))

        connection.attach_identity(identity)
        self._registry.register(identity.id, connection)
        self._registry.set_roles(identity.id, identity.roles)

        logger.info(
            "Connection %s authenticated for user %s with roles: %s",
            connection.id,
            identity.id,
            ", ".join(role.value for role in identity.roles) or "-",
        )
        return identity

    async def _resolve_roles(self, user_id: str) -> Iterable[Role | str]:
        # A token may name a user missing from the store; that user simply
        # gets no roles.
        try:
            roles = await to_thread.run_sync(self._lookup_user_roles, user_id)
        except Exception:
            logger.exception("Error fetching roles for user %s", user_id)
            return ()
        if roles is None:
            logger.warning("User %s has a valid token but no user record", user_id)
            return ()
        return roles


__all__ = ["AuthHandshake", "extract_credential"]
