"""Domain entity describing the task fields notifications refer to."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Task:
    """Minimal task snapshot handed over by the task service."""

    id: str
    title: str
    user_id: str


__all__ = ["Task"]
