"""Session-scoped access to notification and role data for realtime handlers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskhub.domain.entities import Notification, Role
from taskhub.domain.exceptions import RecordNotFound, StoreFailure
from taskhub.infrastructure.repositories import NotificationRepository, UserRepository

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class NotificationStore:
    """Open a short-lived session per call and translate database errors.

    Calls are single-attempt: a ``SQLAlchemyError`` is rolled back and
    re-raised as :class:`StoreFailure`.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def save(self, notification: Notification) -> Notification:
        with self._repository("save notification") as repository:
            return repository.create(notification)

    def list_for_user(self, user_id: str) -> Sequence[Notification]:
        with self._repository("fetch notifications") as repository:
            return repository.list_for_user(user_id)

    def count_unread(self, user_id: str) -> int:
        with self._repository("count unread notifications") as repository:
            return repository.count_unread(user_id)

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        """Mark the user's notification as read.

        Raises :class:`RecordNotFound` when the id is unknown or addressed to
        someone else; both cases look the same to the caller.
        """

        with self._repository("mark notification as read") as repository:
            notification = repository.mark_as_read(notification_id, user_id=user_id)
        if notification is None:
            raise RecordNotFound(notification_id)
        return notification

    @contextmanager
    def _repository(self, operation: str) -> Iterator[NotificationRepository]:
        session = self._session_factory()
        try:
            yield NotificationRepository(session)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Notification store failed to %s", operation)
            raise StoreFailure(operation) from exc
        finally:
            session.close()


class UserRoleDirectory:
    """Role lookup used by the websocket handshake."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def lookup_user_roles(self, user_id: str) -> list[Role] | None:
        with self._users() as repository:
            return repository.get_roles(user_id)

    @contextmanager
    def _users(self) -> Iterator[UserRepository]:
        session = self._session_factory()
        try:
            yield UserRepository(session)
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed")
            raise StoreFailure("look up users") from exc
        finally:
            session.close()


__all__ = ["NotificationStore", "SessionFactory", "UserRoleDirectory"]
