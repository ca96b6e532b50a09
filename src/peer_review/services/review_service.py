"""Domain logic for peer review submission and review read models."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.context import SessionContext, has_assigned_group
from ..core.errors import StoreFailure
from ..models import RATING_FIELDS, RUBRIC_VERSION, Review, User, UserRole, YesNo
from ..schemas import ReviewCreate
from ..utils.datetime import local_date, parse_iso, start_of_local_day, to_utc_naive, utcnow

logger = logging.getLogger(__name__)

DUPLICATE_REVIEW_MESSAGE = "You have already submitted a review for this user today"
NO_GROUP_MESSAGE = "You must be assigned to a group to submit reviews"

_REQUIRED_WHEN_PRESENT = (
    "punctuality",
    "environment",
    *RATING_FIELDS,
    "areas_for_improvement",
    "suggestions",
)


class ReviewRuleViolation(Exception):
    """Raised when review submission rules are not met."""

    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class DuplicateReviewError(ReviewRuleViolation):
    """The reviewer already rated this reviewee today."""

    def __init__(self, detail: str = DUPLICATE_REVIEW_MESSAGE) -> None:
        super().__init__(detail, status_code=409)


def review_moment(review: Review) -> Optional[datetime]:
    """Server timestamp, falling back to the client ISO string on legacy rows."""

    return review.timestamp or parse_iso(review.created_at_iso)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _validate_rubric(payload: ReviewCreate) -> None:
    missing = [name for name in _REQUIRED_WHEN_PRESENT if _is_blank(getattr(payload, name))]
    if missing:
        raise ReviewRuleViolation(f"Missing required field: {missing[0]}")
    for name in RATING_FIELDS:
        value = getattr(payload, name)
        if not 1 <= value <= 5:
            raise ReviewRuleViolation(f"Rating {name} must be between 1 and 5.")


def _load_member(session: Session, user_id: str, role_label: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise ReviewRuleViolation(f"{role_label} {user_id} not found", status_code=404)
    return user


def has_submitted_review_today(
    session: Session,
    reviewer_id: str,
    reviewed_user_id: str,
    *,
    now: Optional[datetime] = None,
) -> bool:
    """Read-then-decide eligibility check for the daily review rule."""

    if not reviewer_id or not reviewed_user_id:
        raise ReviewRuleViolation("Missing required parameters for review check")

    day_start = start_of_local_day(get_settings().local_timezone, now)
    stmt = select(Review).where(
        Review.reviewer_id == reviewer_id,
        Review.reviewed_user_id == reviewed_user_id,
    )
    reviews = session.execute(stmt).scalars().all()
    return any((review_moment(review) or datetime.min) >= day_start for review in reviews)


def reviewed_today(session: Session, reviewer_id: str, *, now: Optional[datetime] = None) -> Set[str]:
    """Ids of reviewees ``reviewer_id`` has already rated today."""

    if not reviewer_id:
        return set()
    day_start = start_of_local_day(get_settings().local_timezone, now)
    stmt = select(Review).where(Review.reviewer_id == reviewer_id)
    return {
        review.reviewed_user_id
        for review in session.execute(stmt).scalars()
        if (review_moment(review) or datetime.min) >= day_start
    }


def submit_review(
    session: Session,
    *,
    context: SessionContext,
    payload: ReviewCreate,
    now: Optional[datetime] = None,
) -> Review:
    """Validate, check eligibility and persist a review.

    On success the reviewee is added to ``context.reviewed_today``.
    """

    required = {
        "groupId": payload.group_id,
        "reviewerId": context.user_id,
        "reviewedUserId": payload.reviewed_user_id,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ReviewRuleViolation(f"Missing required fields: {', '.join(missing)}")

    if payload.reviewed_user_id in context.reviewed_today:
        raise DuplicateReviewError()

    if payload.attendance == YesNo.YES:
        _validate_rubric(payload)

    try:
        reviewer = _load_member(session, context.user_id, "Reviewer")
        if reviewer.role != UserRole.STUDENT:
            raise ReviewRuleViolation("Only students can submit reviews.", status_code=403)
        # group reference is re-read here; the caller's copy may be stale
        if not has_assigned_group(reviewer.group_id):
            raise ReviewRuleViolation(NO_GROUP_MESSAGE)
        if reviewer.group_id != payload.group_id:
            raise ReviewRuleViolation("You can only review members of your own group.", status_code=403)
        if payload.reviewed_user_id == reviewer.id:
            raise ReviewRuleViolation("Students cannot review themselves.")

        reviewee = _load_member(session, payload.reviewed_user_id, "Reviewed user")
        if reviewee.group_id != payload.group_id:
            raise ReviewRuleViolation("Reviewed user is not a member of this group.")

        if has_submitted_review_today(session, reviewer.id, reviewee.id, now=now):
            raise DuplicateReviewError()

        submitted_at = to_utc_naive(now) if now else utcnow()
        review = Review(
            reviewer_id=reviewer.id,
            reviewed_user_id=reviewee.id,
            group_id=payload.group_id,
            reviewer_name=reviewer.full_name or reviewer.email,
            rubric_version=RUBRIC_VERSION,
            attendance=payload.attendance,
            timestamp=submitted_at,
            created_at_iso=payload.created_at_iso or submitted_at.isoformat() + "Z",
            review_day=local_date(submitted_at, get_settings().local_timezone),
        )
        if payload.attendance == YesNo.YES:
            review.punctuality = payload.punctuality
            review.environment = payload.environment
            for name in RATING_FIELDS:
                setattr(review, name, getattr(payload, name))
            review.areas_for_improvement = payload.areas_for_improvement.strip()
            review.suggestions = payload.suggestions.strip()
            if not _is_blank(payload.additional_feedback):
                review.additional_feedback = payload.additional_feedback.strip()

        session.add(review)
        session.flush()
    except IntegrityError as exc:
        # lost the race against a concurrent submission for the same day
        session.rollback()
        raise DuplicateReviewError() from exc
    except SQLAlchemyError as exc:
        logger.error("review submission failed: %s", exc)
        raise StoreFailure(f"Failed to submit review: {exc}") from exc

    context.reviewed_today.add(reviewee.id)
    logger.info("review %s submitted by %s for %s", review.id, reviewer.id, reviewee.id)
    return review


def get_group_reviews(session: Session, group_id: Optional[str]) -> Sequence[Review]:
    """All reviews recorded in a group."""

    if not group_id:
        logger.warning("get_group_reviews called without group_id")
        return []
    stmt = select(Review).where(Review.group_id == group_id)
    return session.execute(stmt).scalars().all()


def get_user_reviews(session: Session, user_id: Optional[str], group_id: Optional[str]) -> Sequence[Review]:
    """Reviews a student received within a group."""

    if not user_id or not group_id:
        logger.warning("get_user_reviews called with missing parameters: %s, %s", user_id, group_id)
        return []
    stmt = select(Review).where(Review.group_id == group_id, Review.reviewed_user_id == user_id)
    return session.execute(stmt).scalars().all()


def get_reviews_by_user(session: Session, reviewer_id: Optional[str], group_id: Optional[str]) -> List[Review]:
    """Reviews written by ``reviewer_id`` in a group, newest first."""

    if not reviewer_id or not group_id:
        logger.warning("get_reviews_by_user called with missing parameters: %s, %s", reviewer_id, group_id)
        return []
    stmt = select(Review).where(Review.group_id == group_id, Review.reviewer_id == reviewer_id)
    reviews = session.execute(stmt).scalars().all()
    return sorted(reviews, key=lambda review: review_moment(review) or datetime.min, reverse=True)


def list_teammates(session: Session, *, context: SessionContext) -> List[tuple]:
    """Group members other than the caller, paired with a reviewed-today flag."""

    if not has_assigned_group(context.group_id):
        return []
    context.reviewed_today |= reviewed_today(session, context.user_id)
    stmt = (
        select(User)
        .where(User.group_id == context.group_id, User.id != context.user_id)
        .order_by(User.full_name.asc())
    )
    return [
        (member, member.id in context.reviewed_today)
        for member in session.execute(stmt).scalars().all()
    ]


def delete_review(session: Session, review_id: str) -> Review:
    """Remove a single review (teacher action)."""

    review = session.get(Review, review_id)
    if review is None:
        raise ReviewRuleViolation(f"Review {review_id} not found", status_code=404)
    session.delete(review)
    session.flush()
    logger.info("review %s deleted", review_id)
    return review
