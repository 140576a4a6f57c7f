"""Tests for the notification producers called by task and user operations."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import SQLAlchemyError

from fakes import FakeSocket, create_user_record
from taskhub.application.use_cases.notifications import (
    count_unread_notifications,
    list_notifications,
    notify_new_task,
    notify_new_user,
    notify_task_deletion,
    notify_task_update,
)
from taskhub.application.use_cases.users import create_user
from taskhub.domain.entities import NotificationType, Role, Task, UserIdentity
from taskhub.infrastructure.notifications import (
    Connection,
    ConnectionRegistry,
    NotificationRouter,
)
from taskhub.infrastructure.repositories import NotificationRepository


def _connect(registry: ConnectionRegistry, user_id: str, *roles: Role) -> FakeSocket:
    socket = FakeSocket()
    connection = Connection(socket)
    connection.attach_identity(UserIdentity(id=user_id, roles=roles))
    registry.register(user_id, connection)
    registry.set_roles(user_id, roles)
    return socket


def test_new_task_is_stored_for_owner_and_pushed_with_admin_shadow(session) -> None:
    admin = create_user_record("admin@example.com", roles=(Role.ADMIN,))
    owner = create_user_record("owner@example.com")
    bystander = create_user_record("bystander@example.com")
    registry = ConnectionRegistry()
    admin_socket = _connect(registry, admin.id, Role.ADMIN)
    owner_socket = _connect(registry, owner.id, Role.USER)
    bystander_socket = _connect(registry, bystander.id, Role.USER)
    router = NotificationRouter(registry)
    task = Task(id="t1", title="Write report", user_id=owner.id)

    async def scenario():
        saved = notify_new_task(session, router, task=task)
        await router.drain()
        return saved

    saved = asyncio.run(scenario())

    assert saved is not None
    assert saved.destination_user_id == owner.id
    assert saved.message == 'You have been assigned a new task "Write report"'
    assert [item.id for item in list_notifications(session, user_id=owner.id)] == [saved.id]
    assert list_notifications(session, user_id=admin.id) == []

    for socket in (admin_socket, owner_socket):
        (message,) = socket.sent
        assert message["type"] == NotificationType.NEW_TASK.value
        assert message["data"]["id"] == saved.id
        assert message["data"]["_sourceEvent"] == NotificationType.NEW_TASK.value
    assert bystander_socket.sent == []


def test_task_update_creates_one_record_per_active_user(session) -> None:
    users = [
        create_user_record("admin@example.com", roles=(Role.ADMIN,)),
        create_user_record("owner@example.com"),
    ]
    create_user_record("inactive@example.com", is_active=False)
    registry = ConnectionRegistry()
    sockets = [_connect(registry, user.id, *user.roles) for user in users]
    router = NotificationRouter(registry)

    async def scenario():
        saved = notify_task_update(
            session, router, task=Task(id="t1", title="Write report", user_id=users[1].id)
        )
        await router.drain()
        return saved

    saved = asyncio.run(scenario())

    assert sorted(item.destination_user_id for item in saved) == sorted(u.id for u in users)
    for user, socket in zip(users, sockets):
        (message,) = socket.sent
        assert message["type"] == NotificationType.UPDATE_TASK.value
        assert message["data"]["destination_user_id"] == user.id


def test_task_deletion_records_have_no_task_reference(session) -> None:
    owner = create_user_record("owner@example.com")
    router = NotificationRouter(ConnectionRegistry())

    saved = notify_task_deletion(session, router, task_id="t1", task_title="Old task")

    (record,) = saved
    assert record.task_id is None
    assert record.type is NotificationType.DELETE_TASK
    assert record.message == 'Task "Old task" has been deleted'
    assert count_unread_notifications(session, user_id=owner.id) == 1


def test_new_user_notifies_admins_only(session) -> None:
    admin = create_user_record("admin@example.com", roles=(Role.ADMIN,))
    offline_admin = create_user_record("offline@example.com", roles=(Role.ADMIN,))
    existing = create_user_record("existing@example.com")
    newcomer = create_user_record("new@example.com", first_name="Nina", last_name="Lee")
    registry = ConnectionRegistry()
    admin_socket = _connect(registry, admin.id, Role.ADMIN)
    user_socket = _connect(registry, existing.id, Role.USER)
    newcomer_socket = _connect(registry, newcomer.id, Role.USER)
    router = NotificationRouter(registry)

    async def scenario():
        saved = notify_new_user(session, router, user=newcomer)
        await router.drain()
        return saved

    saved = asyncio.run(scenario())

    assert sorted(item.destination_user_id for item in saved) == sorted(
        [admin.id, offline_admin.id]
    )
    (message,) = admin_socket.sent
    assert message["type"] == NotificationType.NEW_USER.value
    assert message["data"]["user_id"] == newcomer.id
    assert message["data"]["message"] == "New user Nina Lee (new@example.com) registered"
    assert user_socket.sent == []
    assert newcomer_socket.sent == []


def test_store_failure_is_logged_and_swallowed(session, monkeypatch, caplog) -> None:
    owner = create_user_record("owner@example.com")
    registry = ConnectionRegistry()
    owner_socket = _connect(registry, owner.id, Role.USER)
    router = NotificationRouter(registry)

    def broken_create(self, notification):
        raise SQLAlchemyError("database is locked")

    monkeypatch.setattr(NotificationRepository, "create", broken_create)

    async def scenario():
        saved = notify_new_task(
            session, router, task=Task(id="t1", title="Write report", user_id=owner.id)
        )
        await router.drain()
        return saved

    assert asyncio.run(scenario()) is None
    assert owner_socket.sent == []
    assert "Error in notify_new_task" in caplog.text


def test_create_user_notifies_connected_admins(session) -> None:
    admin = create_user_record("admin@example.com", roles=(Role.ADMIN,))
    registry = ConnectionRegistry()
    admin_socket = _connect(registry, admin.id, Role.ADMIN)
    router = NotificationRouter(registry)

    async def scenario():
        user = create_user(
            session,
            email="new@example.com",
            first_name="Nina",
            last_name="Lee",
            password="secret-password",
            router=router,
        )
        await router.drain()
        return user

    user = asyncio.run(scenario())

    assert user.roles == [Role.USER]
    assert [message["type"] for message in admin_socket.sent] == ["NEW_USER"]
    assert count_unread_notifications(session, user_id=admin.id) == 1
    assert count_unread_notifications(session, user_id=user.id) == 0


def test_create_user_rejects_duplicate_email(session) -> None:
    create_user_record("taken@example.com")

    with pytest.raises(ValueError, match="already registered"):
        create_user(
            session,
            email="taken@example.com",
            first_name="Dup",
            last_name="User",
            password="secret-password",
        )
