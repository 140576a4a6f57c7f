"""Tests for the websocket authentication handshake."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from fakes import FakeSocket
from taskhub.domain.entities import Role
from taskhub.domain.exceptions import InvalidCredential, MissingCredential
from taskhub.infrastructure.notifications import (
    AuthHandshake,
    Connection,
    ConnectionRegistry,
    extract_credential,
)
from taskhub.infrastructure.security import create_access_token, decode_access_token


def _handshake(registry: ConnectionRegistry, roles_by_user=None, *, verify=decode_access_token):
    roles_by_user = roles_by_user or {}
    return AuthHandshake(
        registry,
        verify_credential=verify,
        lookup_user_roles=lambda user_id: roles_by_user.get(user_id),
    )


@pytest.mark.parametrize("credential", [None, "", "   "])
def test_missing_credential_is_rejected(credential) -> None:
    registry = ConnectionRegistry()
    connection = Connection(FakeSocket())

    with pytest.raises(MissingCredential):
        asyncio.run(_handshake(registry).authenticate(connection, credential))

    assert len(registry) == 0
    assert connection.identity is None


def test_bad_signature_and_garbage_collapse_to_invalid_credential() -> None:
    registry = ConnectionRegistry()
    handshake = _handshake(registry)

    for credential in ("not-a-jwt", create_access_token("u1") + "tampered"):
        with pytest.raises(InvalidCredential) as exc_info:
            asyncio.run(handshake.authenticate(Connection(FakeSocket()), credential))
        assert str(exc_info.value) == "Invalid credential"

    assert len(registry) == 0


def test_expired_token_is_invalid() -> None:
    registry = ConnectionRegistry()
    token = create_access_token("u1", expires_delta=timedelta(minutes=-1))

    with pytest.raises(InvalidCredential):
        asyncio.run(_handshake(registry).authenticate(Connection(FakeSocket()), token))


def test_token_without_subject_is_invalid() -> None:
    registry = ConnectionRegistry()
    handshake = _handshake(registry, verify=lambda token: {"exp": 0})

    with pytest.raises(InvalidCredential):
        asyncio.run(handshake.authenticate(Connection(FakeSocket()), "token"))


def test_successful_handshake_registers_identity_and_roles() -> None:
    registry = ConnectionRegistry()
    connection = Connection(FakeSocket())
    handshake = _handshake(registry, {"a1": ["admin", "user"]})

    identity = asyncio.run(handshake.authenticate(connection, create_access_token("a1")))

    assert identity.id == "a1"
    assert identity.roles == (Role.ADMIN, Role.USER)
    assert identity.has_role(Role.ADMIN)
    assert connection.identity == identity
    assert registry.connections_for("a1") == frozenset({connection})
    assert registry.users_with_role(Role.ADMIN) == {"a1"}


def test_user_missing_from_store_connects_without_roles() -> None:
    registry = ConnectionRegistry()
    connection = Connection(FakeSocket())

    identity = asyncio.run(
        _handshake(registry).authenticate(connection, create_access_token("ghost"))
    )

    assert identity.roles == ()
    assert registry.is_connected("ghost")
    assert registry.roles_for("ghost") == ()


def test_role_lookup_failure_falls_back_to_no_roles() -> None:
    registry = ConnectionRegistry()

    def broken_lookup(user_id):
        raise RuntimeError("database down")

    handshake = AuthHandshake(
        registry, verify_credential=decode_access_token, lookup_user_roles=broken_lookup
    )

    identity = asyncio.run(
        handshake.authenticate(Connection(FakeSocket()), create_access_token("u1"))
    )

    assert identity.roles == ()
    assert registry.is_connected("u1")


def test_extract_credential_prefers_query_then_headers() -> None:
    assert extract_credential(FakeSocket(query_params={"token": "abc"})) == "abc"
    assert extract_credential(FakeSocket(headers={"Authorization": "Bearer xyz"})) == "xyz"
    assert extract_credential(FakeSocket(headers={"X-Auth-Token": "hdr"})) == "hdr"
    assert extract_credential(FakeSocket(headers={"Authorization": "Basic xyz"})) is None
    assert extract_credential(FakeSocket()) is None
