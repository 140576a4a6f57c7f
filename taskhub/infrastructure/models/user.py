"""SQLAlchemy model for the user table."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from taskhub.infrastructure.database import Base
from taskhub.infrastructure.models.role import user_role_table
from taskhub.utils import now_in_app_naive_datetime


def _new_id() -> str:
    return str(uuid4())


class UserModel(Base):
    """Database representation of the system user."""

    __tablename__ = "user"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(120), nullable=False, unique=True, index=True)
    first_name = Column(String(60), nullable=False)
    last_name = Column(String(60), nullable=False, default="")
    password = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)
    roles = relationship("RoleModel", secondary=user_role_table, lazy="selectin")


__all__ = ["UserModel"]
