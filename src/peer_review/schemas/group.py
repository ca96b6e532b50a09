"""Pydantic schemas for group management."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .user import UserSummary


class GroupCreate(BaseModel):
    """Request body for creating a group."""

    name: str = Field(..., max_length=120, description="Display name; surrounding whitespace is dropped.")


class RubricAverages(BaseModel):
    quality_of_contribution: Optional[float] = None
    level_of_participation: Optional[float] = None
    collaboration: Optional[float] = None
    overall_contribution: Optional[float] = None
    review_count: int = Field(0, ge=0)


class GroupRead(BaseModel):
    """Group with live averages and derived member count."""

    id: str
    name: str
    created_at: datetime
    member_count: int = Field(..., ge=0)
    averages: RubricAverages
    averages_refreshed_at: Optional[datetime] = None


class GroupDetail(GroupRead):
    members: list[UserSummary]


class StudentAssignment(BaseModel):
    """Assign a student to a group, or ``"unassigned"`` to clear it."""

    student_id: str
    group_id: str = Field(..., min_length=1)


class GroupDeletionReport(BaseModel):
    group_id: str
    unassigned_student_ids: list[str]


class StudentDeletionReport(BaseModel):
    student_id: str
    reviews_deleted: int = Field(..., ge=0)
    identity_deleted: bool


MembershipState = Literal["unassigned", "pending_new", "assigned"]
