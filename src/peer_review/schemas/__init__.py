"""Public schema exports."""

from .group import (
	GroupCreate,
	GroupDeletionReport,
	GroupDetail,
	GroupRead,
	RubricAverages,
	StudentAssignment,
	StudentDeletionReport,
)
from .review import ReceivedReviewRead, ReviewCreate, ReviewRead, TeammateStatus, UserAggregates
from .user import LoginRequest, Preferences, ProfileUpdate, SessionRead, SignupRequest, UserRead, UserSummary

__all__ = [
	"GroupCreate",
	"GroupDeletionReport",
	"GroupDetail",
	"GroupRead",
	"LoginRequest",
	"Preferences",
	"ProfileUpdate",
	"ReceivedReviewRead",
	"ReviewCreate",
	"ReviewRead",
	"RubricAverages",
	"SessionRead",
	"SignupRequest",
	"StudentAssignment",
	"StudentDeletionReport",
	"TeammateStatus",
	"UserAggregates",
	"UserRead",
	"UserSummary",
]
