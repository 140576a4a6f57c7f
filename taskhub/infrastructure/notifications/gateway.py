"""Per-connection protocol handling for the notification websocket."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from anyio import to_thread
from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from taskhub.domain.exceptions import (
    AuthFailure,
    NotAuthenticated,
    NotificationError,
    RecordNotFound,
)

from .handshake import AuthHandshake, extract_credential
from .registry import Connection, ConnectionRegistry, ConnectionState
from .router import NotificationRouter
from .serialization import serialize_notification
from .store import NotificationStore

logger = logging.getLogger(__name__)

SUBSCRIBE = "subscribeToNotifications"
LIST_NOTIFICATIONS = "getNotifications"
MARK_AS_READ = "markAsRead"
UNREAD_COUNT = "unreadCount"
PING = "ping"
PONG = "pong"

Response = dict[str, Any]
Handler = Callable[[Connection, dict[str, Any]], Awaitable[Response]]


class ClientMessage(BaseModel):
    """Envelope of every frame sent by a client."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(min_length=1)
    id: str | int | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _missing_data_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class MarkReadPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_id: str = Field(alias="notificationId", min_length=1)


def _failure(error: str) -> Response:
    return {"success": False, "error": error}


class SessionGateway:
    """Drive one websocket through connect, authenticate, serve and close."""

    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        handshake: AuthHandshake,
        router: NotificationRouter,
        store: NotificationStore,
    ) -> None:
        self._registry = registry
        self._handshake = handshake
        self._router = router
        self._store = store
        self._handlers: dict[str, Handler] = {
            SUBSCRIBE: self._handle_subscribe,
            LIST_NOTIFICATIONS: self._handle_list,
            MARK_AS_READ: self._handle_mark_as_read,
        }

    async def serve(self, websocket: WebSocket) -> None:
        """Run the session bound to ``websocket`` until it closes."""

        connection = Connection(websocket)
        await websocket.accept()

        try:
            identity = await self._handshake.authenticate(
                connection, extract_credential(websocket)
            )
        except AuthFailure as exc:
            logger.warning("Rejecting connection %s: %s", connection.id, exc)
            await connection.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        except Exception:
            logger.exception("Error in connection %s handshake", connection.id)
            await connection.close(code=status.WS_1011_INTERNAL_ERROR)
            return

        connection.state = ConnectionState.AUTHENTICATED
        try:
            await self._push_unread_count(connection)
            connection.state = ConnectionState.ACTIVE
            await self._receive_loop(connection)
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("Connection %s closed after an unexpected error", connection.id)
            try:
                await connection.close(code=status.WS_1011_INTERNAL_ERROR)
            except RuntimeError:
                pass
        finally:
            connection.state = ConnectionState.CLOSED
            self._registry.unregister(identity.id, connection)
            logger.info("Client disconnected: %s (user %s)", connection.id, identity.id)

    async def handle_message(self, connection: Connection, message: ClientMessage) -> Response:
        """Answer a single client request. Failures come back as responses."""

        handler = self._handlers.get(message.type)
        if handler is None:
            return _failure("Unsupported message type")
        try:
            return await handler(connection, message.data)
        except NotificationError as exc:
            return _failure(str(exc))
        except Exception:
            logger.exception(
                "Error handling %s for connection %s", message.type, connection.id
            )
            return _failure("Internal error")

    async def _receive_loop(self, connection: Connection) -> None:
        while True:
            try:
                raw = await connection.receive()
            except ValueError:
                continue

            try:
                message = ClientMessage.model_validate(raw)
            except ValidationError:
                # Frames without a usable type cannot be answered and are skipped.
                if isinstance(raw, dict) and isinstance(raw.get("type"), str) and raw["type"]:
                    await connection.reply(raw["type"], raw.get("id"), _failure("Invalid payload"))
                continue

            if message.type == PING:
                await connection.send(PONG, None)
                continue

            response = await self.handle_message(connection, message)
            await connection.reply(message.type, message.id, response)

    async def _handle_subscribe(self, connection: Connection, data: dict[str, Any]) -> Response:
        user_id = self._require_user(connection)
        logger.info("User %s subscribed to notifications", user_id)
        return {"success": True}

    async def _handle_list(self, connection: Connection, data: dict[str, Any]) -> Response:
        user_id = self._require_user(connection)
        notifications = await to_thread.run_sync(self._store.list_for_user, user_id)
        return {
            "success": True,
            "notifications": [serialize_notification(item) for item in notifications],
        }

    async def _handle_mark_as_read(self, connection: Connection, data: dict[str, Any]) -> Response:
        user_id = self._require_user(connection)
        try:
            payload = MarkReadPayload.model_validate(data)
        except ValidationError:
            return _failure("notificationId is required")

        logger.info(
            "Marking notification %s as read for user %s", payload.notification_id, user_id
        )
        try:
            notification = await to_thread.run_sync(
                self._store.mark_read, user_id, payload.notification_id
            )
        except RecordNotFound as exc:
            return _failure(str(exc))

        await self.refresh_unread_count(user_id)
        return {"success": True, "notification": serialize_notification(notification)}

    async def refresh_unread_count(self, user_id: str) -> None:
        """Push the current unread count to every connection of ``user_id``."""

        try:
            count = await to_thread.run_sync(self._store.count_unread, user_id)
        except NotificationError:
            return
        await self._router.send_to_user(user_id, UNREAD_COUNT, {"count": count})

    async def _push_unread_count(self, connection: Connection) -> None:
        user_id = self._require_user(connection)
        try:
            count = await to_thread.run_sync(self._store.count_unread, user_id)
        except NotificationError:
            logger.warning("Skipping welcome unread count for user %s", user_id)
            return
        await connection.send(UNREAD_COUNT, {"count": count})

    @staticmethod
    def _require_user(connection: Connection) -> str:
        user_id = connection.user_id
        if user_id is None:
            raise NotAuthenticated()
        return user_id


__all__ = [
    "ClientMessage",
    "LIST_NOTIFICATIONS",
    "MARK_AS_READ",
    "SUBSCRIBE",
    "SessionGateway",
    "UNREAD_COUNT",
]
