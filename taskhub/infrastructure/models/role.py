"""SQLAlchemy models for user roles."""

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from taskhub.infrastructure.database import Base


user_role_table = Table(
    "user_role",
    Base.metadata,
    Column(
        "user_id",
        String(36),
        ForeignKey("user.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "role_id",
        Integer,
        ForeignKey("role.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class RoleModel(Base):
    """Database representation of the system roles."""

    __tablename__ = "role"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False, unique=True)
    alias = Column(String(50), nullable=False, unique=True)


__all__ = ["RoleModel", "user_role_table"]
