"""Use case for creating users."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from taskhub.application.use_cases.notifications import notify_new_user
from taskhub.domain.entities import Role, User, normalize_roles
from taskhub.infrastructure.notifications import NotificationRouter
from taskhub.infrastructure.repositories import UserRepository
from taskhub.infrastructure.security import get_password_hash
from taskhub.utils import now_in_app_timezone


def create_user(
    session: Session,
    *,
    email: str,
    first_name: str,
    last_name: str,
    password: str,
    roles: Iterable[Role | str] = (Role.USER,),
    router: NotificationRouter | None = None,
) -> User:
    """Create a new user ensuring unique email addresses.

    When ``router`` is given, admins are notified about the registration.
    """

    repository = UserRepository(session)
    if repository.get_by_email(email):
        raise ValueError("Email address already registered")

    resolved_roles = list(normalize_roles(roles))
    if not resolved_roles:
        raise ValueError("At least one valid role is required")

    user = repository.create(
        User(
            id=None,
            email=email,
            first_name=first_name,
            last_name=last_name,
            password=get_password_hash(password),
            roles=resolved_roles,
            is_active=True,
            created_at=now_in_app_timezone(),
        )
    )

    if router is not None:
        notify_new_user(session, router, user=user)
    return user


__all__ = ["create_user"]
