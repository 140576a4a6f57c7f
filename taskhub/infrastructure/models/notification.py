"""SQLAlchemy model for persisted notifications."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.sql import expression

from taskhub.domain.entities import NotificationType
from taskhub.infrastructure.database import Base
from taskhub.utils import now_in_app_naive_datetime


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (Index("ix_notification_destination_type", "destination_user_id", "type"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    destination_user_id = Column(
        String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Tasks live in another service, so this is a plain reference.
    task_id = Column(String(36), nullable=True)
    type = Column(Enum(NotificationType, native_enum=False, length=20), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)


__all__ = ["NotificationModel"]
