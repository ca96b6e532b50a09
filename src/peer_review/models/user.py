"""User profile model."""

import enum
import uuid

from sqlalchemy import JSON, Column, DateTime, Enum, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base
from ..utils.datetime import utcnow


class UserRole(str, enum.Enum):
    """Account roles; fixed at signup."""

    STUDENT = "student"
    TEACHER = "teacher"


def default_preferences() -> dict:
    return {"email_notifications": True, "dark_mode": False}


class User(Base):
    """Profile record for a student or teacher.

    ``group_id`` is the authoritative membership field. It is null or the
    ``"new"`` sentinel until a teacher assigns the student to a group.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="users_email_unique"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=False)
    full_name = Column(String, nullable=False)
    bio = Column(Text)
    role = Column(Enum(UserRole, name="user_role"), nullable=False)
    group_id = Column(String(36), index=True)
    preferences = Column(JSON, nullable=False, default=default_preferences)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    last_login_at = Column(DateTime)

    reviews_written = relationship("Review", back_populates="reviewer")
