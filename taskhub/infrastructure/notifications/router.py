"""Fan-out policy for realtime notifications."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Iterable, Mapping

from anyio import from_thread
from fastapi import WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from taskhub.domain.entities import NotificationType, Role
from taskhub.domain.exceptions import DeliveryFailure
from taskhub.utils import now_iso

from .registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)

SOURCE_EVENT_KEY = "_sourceEvent"
TIMESTAMP_KEY = "timestamp"

# Errors raised by a socket that is gone. Anything else leaves the connection registered.
TRANSPORT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)

DeliveryFactory = Callable[[], Coroutine[Any, Any, int]]


def _event_name(event: str | NotificationType) -> str:
    return event.value if isinstance(event, NotificationType) else str(event)


class NotificationRouter:
    """Decide who receives an event and push it over their live connections.

    Routing rules for :meth:`dispatch`:

    * ``NEW_USER`` events go only to connected admins.
    * Events with a target go to the target's connections and, as a shadow
      copy, to every other connected admin.
    * Anything else is broadcast to every live connection.

    Payloads are made JSON-compatible once per delivery round with
    ``jsonable_encoder``; a payload that cannot be encoded is dropped without
    touching any connection. Delivery is best-effort. A socket that fails
    with a transport error is logged, closed and dropped from the registry
    while the remaining recipients are still served, and nothing is ever
    raised back to the caller.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self._pending: set[asyncio.Task[Any]] = set()

    async def dispatch(
        self,
        event: str | NotificationType,
        payload: Mapping[str, Any],
        target_user_id: str | None = None,
        *,
        exclude_user_id: str | None = None,
    ) -> int:
        """Route ``payload`` and return how many connections accepted it."""

        event_name = _event_name(event)
        try:
            recipients = self._resolve_recipients(event_name, target_user_id, exclude_user_id)
            if not recipients:
                logger.debug("No live recipients for event %s", event_name)
                return 0
            return await self._deliver(recipients, event_name, payload, enrich=True)
        except Exception:
            logger.exception("Error dispatching notification %s", event_name)
            return 0

    async def send_to_user(
        self,
        user_id: str,
        event: str | NotificationType,
        payload: Mapping[str, Any],
        *,
        enrich: bool = False,
    ) -> int:
        """Push ``payload`` to the connections of ``user_id`` only."""

        event_name = _event_name(event)
        try:
            connections = self._registry.connections_for(user_id)
            if not connections:
                logger.debug("No active connections for user %s", user_id)
                return 0
            pairs = [(user_id, connection) for connection in connections]
            return await self._deliver(pairs, event_name, payload, enrich=enrich)
        except Exception:
            logger.exception("Error sending %s to user %s", event_name, user_id)
            return 0

    def notify_event(
        self,
        event: str | NotificationType,
        payload: Mapping[str, Any],
        target_user_id: str | None = None,
        *,
        exclude_user_id: str | None = None,
    ) -> None:
        """Schedule :meth:`dispatch` without waiting for delivery.

        Safe to call from synchronous business code running either on the
        event loop or in an AnyIO worker thread.
        """

        self._schedule(
            lambda: self.dispatch(
                event, dict(payload), target_user_id, exclude_user_id=exclude_user_id
            )
        )

    def notify_user(
        self,
        user_id: str,
        event: str | NotificationType,
        payload: Mapping[str, Any],
        *,
        enrich: bool = True,
    ) -> None:
        """Schedule :meth:`send_to_user` without waiting for delivery."""

        self._schedule(lambda: self.send_to_user(user_id, event, dict(payload), enrich=enrich))

    async def drain(self) -> None:
        """Wait for scheduled deliveries that are still running."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _resolve_recipients(
        self,
        event_name: str,
        target_user_id: str | None,
        exclude_user_id: str | None,
    ) -> list[tuple[str, Connection]]:
        if event_name == NotificationType.NEW_USER.value:
            user_ids: Iterable[str] = self._registry.users_with_role(Role.ADMIN)
        elif target_user_id:
            shadow = self._registry.users_with_role(Role.ADMIN) - {target_user_id}
            user_ids = [target_user_id, *sorted(shadow)]
        else:
            return [
                (connection.user_id, connection)
                for connection in self._registry.all_connections()
                if connection.user_id is not None and connection.user_id != exclude_user_id
            ]

        recipients: list[tuple[str, Connection]] = []
        seen: set[Connection] = set()
        for user_id in user_ids:
            if exclude_user_id is not None and user_id == exclude_user_id:
                continue
            for connection in self._registry.connections_for(user_id):
                if connection in seen:
                    continue
                seen.add(connection)
                recipients.append((user_id, connection))
        return recipients

    async def _deliver(
        self,
        recipients: Iterable[tuple[str, Connection]],
        event_name: str,
        payload: Mapping[str, Any],
        *,
        enrich: bool,
    ) -> int:
        try:
            body = jsonable_encoder(dict(payload))
        except (TypeError, ValueError):
            logger.exception("Dropping %s: payload is not JSON serializable", event_name)
            return 0

        delivered = 0
        for user_id, connection in recipients:
            message = dict(body)
            if enrich:
                message[SOURCE_EVENT_KEY] = event_name
                message[TIMESTAMP_KEY] = now_iso()
            try:
                await connection.send(event_name, message)
            except TRANSPORT_ERRORS as exc:
                logger.warning("%s", DeliveryFailure(connection.id, event_name, exc))
                self._registry.unregister(user_id, connection)
                await self._evict(connection)
                continue
            except Exception:
                logger.exception(
                    "Error sending %s to connection %s", event_name, connection.id
                )
                continue
            delivered += 1
        return delivered

    @staticmethod
    async def _evict(connection: Connection) -> None:
        try:
            await connection.close(code=status.WS_1011_INTERNAL_ERROR)
        except TRANSPORT_ERRORS:
            pass

    def _schedule(self, factory: DeliveryFactory) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run_sync(self._spawn, factory)
            except RuntimeError:
                logger.warning("No running event loop; realtime notification dropped")
        else:
            self._spawn(factory, loop)

    def _spawn(
        self, factory: DeliveryFactory, loop: asyncio.AbstractEventLoop | None = None
    ) -> None:
        loop = loop or asyncio.get_running_loop()
        task = loop.create_task(factory())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


__all__ = ["NotificationRouter", "SOURCE_EVENT_KEY", "TIMESTAMP_KEY"]
