"""Wire representation of notifications pushed over websockets."""

from __future__ import annotations

from typing import Any

from taskhub.domain.entities import Notification


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return a JSON-serializable representation of ``notification``."""

    return {
        "id": notification.id,
        "destination_user_id": notification.destination_user_id,
        "task_id": notification.task_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "read": notification.read,
        "created_at": notification.created_at.isoformat()
        if notification.created_at
        else None,
    }


__all__ = ["serialize_notification"]
