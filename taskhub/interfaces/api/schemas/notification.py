"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from taskhub.domain.entities import NotificationType


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    destination_user_id: str
    task_id: str | None = None
    type: NotificationType
    title: str
    message: str
    read: bool
    created_at: datetime | None = None


class UnreadCountRead(BaseModel):
    count: int


__all__ = ["NotificationRead", "UnreadCountRead"]
