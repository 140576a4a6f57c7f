"""Persistence layer for roles data."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskhub.domain.entities import Role
from taskhub.infrastructure.models import RoleModel


class RoleRepository:
    """Provide access to roles stored in the database."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_model(self, role: Role) -> RoleModel | None:
        return (
            self.session.query(RoleModel)
            .filter(func.lower(RoleModel.alias) == role.value)
            .first()
        )

    def ensure(self, role: Role) -> RoleModel:
        """Return the row for ``role`` creating it when missing."""

        model = self.get_model(role)
        if model is None:
            model = RoleModel(name=role.name.title(), alias=role.value)
            self.session.add(model)
            self.session.flush()
        return model


__all__ = ["RoleRepository"]
