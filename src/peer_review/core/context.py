"""Per-session caller context passed explicitly into service calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Set

from ..models import User, UserRole

PENDING_GROUP = "new"


def has_assigned_group(group_id: Optional[str]) -> bool:
    """True when ``group_id`` points at a real group (not null or the signup sentinel)."""

    return bool(group_id) and group_id != PENDING_GROUP


@dataclass
class SessionContext:
    """Identity and local review state of the caller.

    Created when a request (or client session) starts and discarded when it
    ends. ``reviewed_today`` mirrors the reviewees the caller already rated
    today so a second submission in the same cycle is refused before it
    reaches the store.
    """

    user_id: str
    role: UserRole
    group_id: Optional[str] = None
    display_name: str = ""
    token: Optional[str] = None
    reviewed_today: Set[str] = field(default_factory=set)

    @classmethod
    def from_user(cls, user: User, token: Optional[str] = None) -> "SessionContext":
        return cls(
            user_id=user.id,
            role=user.role,
            group_id=user.group_id,
            display_name=user.full_name or user.email,
            token=token,
        )

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def has_group(self) -> bool:
        return has_assigned_group(self.group_id)
