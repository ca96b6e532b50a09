"""SQLAlchemy models for the peer review service."""

from .group import Group
from .identity import IdentityAccount, IdentitySession
from .review import RATING_FIELDS, RUBRIC_VERSION, LearningEnvironment, Review, YesNo
from .user import User, UserRole, default_preferences

__all__ = [
    "Group",
    "IdentityAccount",
    "IdentitySession",
    "LearningEnvironment",
    "RATING_FIELDS",
    "RUBRIC_VERSION",
    "Review",
    "User",
    "UserRole",
    "YesNo",
    "default_preferences",
]
