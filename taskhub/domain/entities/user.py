"""Domain entities representing users and connected identities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .role import Role, normalize_roles


@dataclass
class User:
    """Core attributes describing an application user."""

    id: str | None
    email: str
    first_name: str
    last_name: str
    password: str
    roles: list[Role] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class UserIdentity:
    """Identity attached to a realtime connection once the handshake succeeds."""

    id: str
    roles: tuple[Role, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("User identity requires a non-empty id")
        object.__setattr__(self, "roles", normalize_roles(self.roles))

    def has_role(self, role: Role) -> bool:
        return role in self.roles


__all__ = ["User", "UserIdentity"]
