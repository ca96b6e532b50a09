"""Teacher-defined review group."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Float, String

from ..core.database import Base
from ..utils.datetime import utcnow


class Group(Base):
    """A set of students reviewing each other.

    Membership is not stored here; it is derived from ``User.group_id``.
    The ``avg_*`` columns are a cached snapshot of the extended rubric means
    and may lag behind the reviews table.
    """

    __tablename__ = "groups"
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="groups_name_not_blank"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    avg_quality_of_contribution = Column(Float)
    avg_level_of_participation = Column(Float)
    avg_collaboration = Column(Float)
    avg_overall_contribution = Column(Float)
    averages_refreshed_at = Column(DateTime)
