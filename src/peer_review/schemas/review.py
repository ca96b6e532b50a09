"""Pydantic schemas for review submission and read models."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from ..models import RATING_FIELDS, LearningEnvironment, YesNo
from .group import RubricAverages

RUBRIC_KEYS = frozenset(
    ("punctuality", "environment", *RATING_FIELDS, "areas_for_improvement", "suggestions", "additional_feedback")
)


class ReviewCreate(BaseModel):
    """Submission payload.

    Only identity fields and ``attendance`` are structurally required here;
    the attendance branch rules and rating ranges are enforced by the review
    service so that a bad field is reported by name. When ``attendance`` is
    ``no`` every rubric key is discarded before validation.
    """

    reviewed_user_id: str
    group_id: str
    attendance: YesNo
    punctuality: Optional[YesNo] = None
    environment: Optional[LearningEnvironment] = None
    quality_of_contribution: Optional[int] = None
    level_of_participation: Optional[int] = None
    collaboration: Optional[int] = None
    overall_contribution: Optional[int] = None
    areas_for_improvement: Optional[str] = Field(None, max_length=2000)
    suggestions: Optional[str] = Field(None, max_length=2000)
    additional_feedback: Optional[str] = Field(None, max_length=2000)
    created_at_iso: Optional[str] = Field(None, description="Client clock at submission, ISO 8601.")

    @model_validator(mode="before")
    @classmethod
    def _drop_rubric_when_absent(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        attendance = values.get("attendance")
        if getattr(attendance, "value", attendance) != YesNo.NO.value:
            return values
        return {key: value for key, value in values.items() if key not in RUBRIC_KEYS}


class ReceivedReviewRead(BaseModel):
    """A review as shown to its reviewee; the author is withheld."""

    id: str
    group_id: str
    rubric_version: str
    attendance: YesNo
    punctuality: Optional[YesNo] = None
    environment: Optional[LearningEnvironment] = None
    quality_of_contribution: Optional[int] = None
    level_of_participation: Optional[int] = None
    collaboration: Optional[int] = None
    overall_contribution: Optional[int] = None
    areas_for_improvement: Optional[str] = None
    suggestions: Optional[str] = None
    additional_feedback: Optional[str] = None
    timestamp: Optional[datetime] = None
    created_at_iso: str

    class Config:
        from_attributes = True


class ReviewRead(ReceivedReviewRead):
    """Full review record, for its author and for teachers."""

    reviewer_id: str
    reviewer_name: Optional[str] = None
    reviewed_user_id: str


class TeammateStatus(BaseModel):
    id: str
    full_name: str
    reviewed_today: bool


class UserAggregates(RubricAverages):
    """Aggregates over the reviews a student received."""

    present: int = Field(0, ge=0)
    absent: int = Field(0, ge=0)
    punctual: int = Field(0, ge=0)
    unpunctual: int = Field(0, ge=0)
    total_reviews: int = Field(0, ge=0)
    environment: Dict[str, int] = Field(default_factory=dict)