"""Live connection bookkeeping for notification websockets."""

from __future__ import annotations

import json
import threading
from collections import defaultdict
from enum import Enum
from typing import Any, DefaultDict, Iterable, Set
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect, status

from taskhub.domain.entities import Role, UserIdentity, normalize_roles


class ConnectionState(str, Enum):
    """Lifecycle of a realtime session."""

    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    ACTIVE = "active"
    CLOSED = "closed"


class Connection:
    """A single websocket bound to at most one authenticated identity.

    Instances hash by identity, so the same socket registered twice still
    occupies one slot in the registry.
    """

    def __init__(self, transport: WebSocket, *, connection_id: str | None = None) -> None:
        self.id = connection_id or uuid4().hex
        self.state = ConnectionState.CONNECTING
        self._transport = transport
        self._identity: UserIdentity | None = None

    @property
    def identity(self) -> UserIdentity | None:
        return self._identity

    @property
    def user_id(self) -> str | None:
        return self._identity.id if self._identity else None

    def attach_identity(self, identity: UserIdentity) -> None:
        """Bind ``identity`` to this connection. It cannot be replaced later."""

        if self._identity is not None:
            raise RuntimeError(f"Connection {self.id} is already bound to a user")
        self._identity = identity

    async def receive(self) -> Any:
        """Return the next JSON frame from the client, text or binary.

        Raises ``ValueError`` for a frame that is not valid JSON and
        ``WebSocketDisconnect`` once the client has gone.
        """

        message = await self._transport.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(
                code=message.get("code", status.WS_1000_NORMAL_CLOSURE),
                reason=message.get("reason"),
            )
        frame = message.get("text")
        if frame is None:
            frame = message.get("bytes") or b""
        return json.loads(frame)

    async def send(self, event: str, data: Any) -> None:
        await self._transport.send_json({"type": event, "data": data})

    async def reply(self, message_type: str, request_id: Any, data: Any) -> None:
        await self._transport.send_json({"type": message_type, "id": request_id, "data": data})

    async def close(self, code: int = 1000) -> None:
        self.state = ConnectionState.CLOSED
        await self._transport.close(code=code)

    def __repr__(self) -> str:
        return f"<Connection {self.id} user={self.user_id} state={self.state.value}>"


class ConnectionRegistry:
    """Thread-safe map of user ids to live connections and cached roles.

    Every method copies what it needs while holding the lock and returns
    snapshots, so callers never perform I/O with the lock held.
    ``users_with_role`` scans every connected user; admin fan-out cost grows
    with the number of connected users.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: DefaultDict[str, Set[Connection]] = defaultdict(set)
        self._roles: dict[str, tuple[Role, ...]] = {}

    def register(self, user_id: str, connection: Connection) -> None:
        with self._lock:
            self._connections[user_id].add(connection)

    def unregister(self, user_id: str, connection: Connection) -> None:
        with self._lock:
            connections = self._connections.get(user_id)
            if connections is None:
                return
            connections.discard(connection)
            if not connections:
                del self._connections[user_id]
                self._roles.pop(user_id, None)

    def set_roles(self, user_id: str, roles: Iterable[Role | str]) -> None:
        """Replace the cached roles of a connected user.

        Ignored when ``user_id`` has no live connection, so a disconnect that
        races the handshake cannot leave a stale role entry behind.
        """

        normalized = normalize_roles(roles)
        with self._lock:
            if user_id in self._connections:
                self._roles[user_id] = normalized

    def roles_for(self, user_id: str) -> tuple[Role, ...]:
        with self._lock:
            return self._roles.get(user_id, ())

    def connections_for(self, user_id: str) -> frozenset[Connection]:
        with self._lock:
            connections = self._connections.get(user_id)
            return frozenset(connections) if connections else frozenset()

    def users_with_role(self, role: Role) -> set[str]:
        with self._lock:
            return {user_id for user_id, roles in self._roles.items() if role in roles}

    def all_connections(self) -> frozenset[Connection]:
        with self._lock:
            return frozenset(
                connection
                for connections in self._connections.values()
                for connection in connections
            )

    def connected_user_ids(self) -> set[str]:
        with self._lock:
            return set(self._connections)

    def is_connected(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._connections

    def __len__(self) -> int:
        with self._lock:
            return sum(len(connections) for connections in self._connections.values())


__all__ = ["Connection", "ConnectionRegistry", "ConnectionState"]
