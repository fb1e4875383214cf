"""Typed helpers shared across the AI agents."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AgentScope:
    """Represents the caller's authorization context for snapshot queries."""

    user_id: int
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


__all__ = ["AgentScope"]
