"""Peer review record."""

import enum
import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow

RUBRIC_VERSION = "extended-v1"

RATING_FIELDS = (
    "quality_of_contribution",
    "level_of_participation",
    "collaboration",
    "overall_contribution",
)


class YesNo(str, enum.Enum):
    """Binary answer used for attendance and punctuality."""

    YES = "yes"
    NO = "no"


class LearningEnvironment(str, enum.Enum):
    """How conducive the session was to learning."""

    CONDUCIVE = "conducive"
    SOMEWHAT_CONDUCIVE = "somewhat_conducive"
    NOT_CONDUCIVE = "not_conducive"


class Review(Base):
    """One student's rating of a teammate for one session.

    Rows are never updated. When ``attendance`` is ``no`` every rubric column
    is null.
    """

    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("reviewer_id", "reviewed_user_id", "review_day", name="reviews_one_per_day"),
        CheckConstraint("reviewer_id <> reviewed_user_id", name="reviews_reviewer_reviewee_check"),
        *(
            CheckConstraint(f"{name} BETWEEN 1 AND 5", name=f"reviews_{name}_range")
            for name in RATING_FIELDS
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reviewer_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    reviewed_user_id = Column(String(36), nullable=False, index=True)
    group_id = Column(String(36), nullable=False, index=True)
    reviewer_name = Column(String)
    rubric_version = Column(String, nullable=False, default=RUBRIC_VERSION)
    status = Column(String, nullable=False, default="submitted")

    attendance = Column(Enum(YesNo, name="attendance_answer"), nullable=False)
    punctuality = Column(Enum(YesNo, name="punctuality_answer"))
    environment = Column(Enum(LearningEnvironment, name="learning_environment"))
    quality_of_contribution = Column(Integer)
    level_of_participation = Column(Integer)
    collaboration = Column(Integer)
    overall_contribution = Column(Integer)
    areas_for_improvement = Column(Text)
    suggestions = Column(Text)
    additional_feedback = Column(Text)

    timestamp = Column(DateTime, default=utcnow)
    created_at_iso = Column(String, nullable=False)
    review_day = Column(Date, nullable=False)

    reviewer = relationship("User", back_populates="reviews_written")
