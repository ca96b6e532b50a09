"""Service layer exports."""

from . import (
	account_service,
	aggregation_service,
	group_service,
	review_service,
)

__all__ = [
	"account_service",
	"aggregation_service",
	"group_service",
	"review_service",
]
