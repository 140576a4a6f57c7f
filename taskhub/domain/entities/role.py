"""Domain entity representing a user role."""

from __future__ import annotations

from enum import Enum
from typing import Iterable


class Role(str, Enum):
    """Roles that can be granted to a user."""

    ADMIN = "admin"
    USER = "user"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role | None":
        """Return the role matching ``value`` case-insensitively, if any."""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


def normalize_roles(values: Iterable["str | Role"] | None) -> tuple[Role, ...]:
    """Return known roles from ``values`` keeping first-seen order."""

    ordered: list[Role] = []
    for value in values or ():
        role = Role.parse(value)
        if role is not None and role not in ordered:
            ordered.append(role)
    return tuple(ordered)


__all__ = ["Role", "normalize_roles"]
