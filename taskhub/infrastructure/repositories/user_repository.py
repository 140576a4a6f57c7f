"""Persistence layer for user data."""

from __future__ import annotations


from sqlalchemy import func
from sqlalchemy.orm import Session

from taskhub.domain.entities import Role, User, normalize_roles
from taskhub.infrastructure.models import RoleModel, UserModel
from taskhub.utils import ensure_app_naive_datetime, ensure_app_timezone

from .role_repository import RoleRepository


class UserRepository:
    """Provide the user queries the notification subsystem relies on."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> User | None:
        model = self.session.get(UserModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> User | None:
        model = (
            self.session.query(UserModel)
            .filter(func.lower(UserModel.email) == email.lower())
            .first()
        )
        return self._to_entity(model) if model else None

    def get_roles(self, user_id: str) -> list[Role] | None:
        """Return the roles of ``user_id`` or ``None`` when the user is unknown."""

        model = self.session.get(UserModel, user_id)
        if model is None:
            return None
        return list(normalize_roles(role.alias for role in model.roles))

    def list_ids(self, *, active_only: bool = True) -> list[str]:
        query = self.session.query(UserModel.id)
        if active_only:
            query = query.filter(UserModel.is_active.is_(True))
        return [user_id for (user_id,) in query.all()]

    def list_admin_ids(self) -> list[str]:
        """Return the ids of active users holding the admin role."""

        query = (
            self.session.query(UserModel.id)
            .join(UserModel.roles)
            .filter(func.lower(RoleModel.alias) == Role.ADMIN.value)
            .filter(UserModel.is_active.is_(True))
        )
        return [user_id for (user_id,) in query.distinct().all()]

    def create(self, user: User) -> User:
        if self.get_by_email(user.email):
            raise ValueError(f"A user with email {user.email} already exists")

        role_repository = RoleRepository(self.session)
        model = UserModel(
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            password=user.password,
            is_active=user.is_active,
        )
        if user.id:
            model.id = user.id
        if user.created_at is not None:
            model.created_at = ensure_app_naive_datetime(user.created_at)
        model.roles = [role_repository.ensure(role) for role in normalize_roles(user.roles)]
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            email=model.email,
            first_name=model.first_name,
            last_name=model.last_name or "",
            password=model.password,
            roles=list(normalize_roles(role.alias for role in model.roles)),
            is_active=model.is_active,
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["UserRepository"]
