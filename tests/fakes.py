"""Test doubles shared across the notification tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Iterable

from taskhub.domain.entities import Role, User
from taskhub.infrastructure.database import SessionLocal
from taskhub.infrastructure.repositories import UserRepository


class FakeSocket:
    """In-memory stand-in for a Starlette websocket.

    ``incoming`` frames are handed to ``receive`` in order: ``bytes`` and
    ``str`` arrive as binary and text frames, exceptions are raised, and
    anything else is sent as JSON text. Once they run out the socket reports
    a client disconnect. ``fail`` makes every send raise like a closed socket;
    ``send_error`` raises that exception instead.
    """

    def __init__(
        self,
        *,
        incoming: Iterable[Any] = (),
        fail: bool = False,
        send_error: Exception | None = None,
        query_params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.sent: list[dict[str, Any]] = []
        self.send_error = send_error or (RuntimeError("socket is closed") if fail else None)
        self.accepted = False
        self.closed_with: int | None = None
        self.query_params = query_params or {}
        self.headers = {key.lower(): value for key, value in (headers or {}).items()}
        self._incoming = list(incoming)

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict[str, Any]) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(message)

    async def receive(self) -> dict[str, Any]:
        await asyncio.sleep(0)
        if not self._incoming:
            return {"type": "websocket.disconnect", "code": 1000}
        frame = self._incoming.pop(0)
        if isinstance(frame, Exception):
            raise frame
        if isinstance(frame, bytes):
            return {"type": "websocket.receive", "bytes": frame}
        if not isinstance(frame, str):
            frame = json.dumps(frame)
        return {"type": "websocket.receive", "text": frame}

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code

    def of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["type"] == message_type]


def create_user_record(
    email: str,
    *,
    roles: Iterable[Role] = (Role.USER,),
    first_name: str = "Test",
    last_name: str = "User",
    is_active: bool = True,
) -> User:
    """Insert a user directly, skipping password hashing to keep tests fast."""

    with SessionLocal() as session:
        return UserRepository(session).create(
            User(
                id=None,
                email=email,
                first_name=first_name,
                last_name=last_name,
                password="not-a-real-hash",
                roles=list(roles),
                is_active=is_active,
            )
        )
