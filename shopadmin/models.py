"""Domain models for the admin authentication service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ADMIN_STATUSES = ("active", "disabled")


@dataclass(frozen=True)
class AdminUser:
    """Represents an admin account stored in the database."""

    id: int
    username: str
    role: str
    status: str
    created_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == "active"


__all__ = ["ADMIN_STATUSES", "AdminUser"]
