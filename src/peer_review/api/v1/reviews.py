"""Review submission and review read endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.context import SessionContext
from ...core.database import get_db
from ...models import User
from ...schemas import ReceivedReviewRead, ReviewCreate, ReviewRead, TeammateStatus, UserAggregates
from ...services import aggregation_service, group_service, review_service
from ...services.group_service import GroupRuleViolation
from ...services.review_service import ReviewRuleViolation
from ...utils.csv_export import reviews_to_csv
from .deps import require_student, require_teacher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post(
    "",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a peer review",
    responses={
        201: {
            "description": "Review recorded",
            "content": {
                "application/json": {
                    "example": {
                        "id": "0b6f3c52-7d0e-4d7a-9a39-5f1f7c9b2e11",
                        "reviewer_id": "3f0c9a9e-1d61-4b0e-8b0b-6d0c1e7f4a21",
                        "reviewer_name": "Ana Ruiz",
                        "reviewed_user_id": "9a1b2c3d-4e5f-4a6b-8c7d-0e1f2a3b4c5d",
                        "group_id": "c2d4e6f8-0a1b-4c3d-8e5f-7a9b1c3d5e7f",
                        "rubric_version": "extended-v1",
                        "attendance": "yes",
                        "punctuality": "yes",
                        "environment": "conducive",
                        "quality_of_contribution": 4,
                        "level_of_participation": 5,
                        "collaboration": 3,
                        "overall_contribution": 4,
                        "areas_for_improvement": "be more vocal",
                        "suggestions": "speak up in standups",
                        "additional_feedback": None,
                        "timestamp": "2025-03-04T15:20:11",
                        "created_at_iso": "2025-03-04T15:20:11Z",
                    }
                }
            },
        },
        400: {"description": "Missing or invalid field, or no group assigned"},
        403: {"description": "Reviewer is not a member of the group"},
        409: {"description": "Already reviewed this teammate today"},
    },
)
def submit_review(
    payload: ReviewCreate,
    context: SessionContext = Depends(require_student),
    db: Session = Depends(get_db),
) -> ReviewRead:
    """Rate a teammate for today's session.

    Example request body::

        {
            "reviewed_user_id": "9a1b2c3d-4e5f-4a6b-8c7d-0e1f2a3b4c5d",
            "group_id": "c2d4e6f8-0a1b-4c3d-8e5f-7a9b1c3d5e7f",
            "attendance": "no"
        }
    """

    try:
        review = review_service.submit_review(db, context=context, payload=payload)
        db.commit()
    except ReviewRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    try:
        group_service.refresh_if_present(db, review.group_id)
        db.commit()
    except SQLAlchemyError as exc:
        # the review is already stored; cached averages catch up on the next refresh
        db.rollback()
        logger.error("averages refresh after review %s failed: %s", review.id, exc)
    db.refresh(review)
    return review


@router.get("/mine", response_model=List[ReviewRead], summary="Reviews I submitted")
def my_reviews(
    context: SessionContext = Depends(require_student),
    db: Session = Depends(get_db),
) -> List[ReviewRead]:
    """Return the caller's submitted reviews in their current group, newest first."""

    return review_service.get_reviews_by_user(db, context.user_id, context.group_id)


@router.get("/received", response_model=List[ReceivedReviewRead], summary="Reviews about me")
def received_reviews(
    context: SessionContext = Depends(require_student),
    db: Session = Depends(get_db),
) -> List[ReceivedReviewRead]:
    return list(review_service.get_user_reviews(db, context.user_id, context.group_id))


@router.get("/received/summary", response_model=UserAggregates, summary="Aggregates of reviews about me")
def received_summary(
    context: SessionContext = Depends(require_student),
    db: Session = Depends(get_db),
) -> UserAggregates:
    reviews = review_service.get_user_reviews(db, context.user_id, context.group_id)
    return UserAggregates(**aggregation_service.compute_user_aggregates(reviews))


@router.get("/teammates", response_model=List[TeammateStatus], summary="Teammates and today's review status")
def teammates(
    context: SessionContext = Depends(require_student),
    db: Session = Depends(get_db),
) -> List[TeammateStatus]:
    return [
        TeammateStatus(id=member.id, full_name=member.full_name, reviewed_today=done)
        for member, done in review_service.list_teammates(db, context=context)
    ]


@router.get("/groups/{group_id}", response_model=List[ReviewRead], summary="All reviews in a group")
def group_reviews(
    group_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> List[ReviewRead]:
    return list(review_service.get_group_reviews(db, group_id))


@router.get(
    "/groups/{group_id}/export",
    summary="Export a group's reviews as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
def export_group_reviews(
    group_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> Response:
    try:
        group = group_service.get_group(db, group_id)
    except GroupRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    reviews = review_service.get_group_reviews(db, group_id)
    user_ids = {review.reviewed_user_id for review in reviews} | {review.reviewer_id for review in reviews}
    names = {}
    if user_ids:
        names = {
            user.id: user.full_name
            for user in db.execute(select(User).where(User.id.in_(user_ids))).scalars()
        }
    body = reviews_to_csv(reviews, names)
    filename = f"{group.name.replace(' ', '_')}_reviews.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/students/{user_id}/summary", response_model=UserAggregates, summary="Aggregates for one student")
def student_summary(
    user_id: str,
    group_id: Optional[str] = Query(None, description="Group to aggregate in; defaults to the student's group"),
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> UserAggregates:
    if group_id is None:
        student = db.get(User, user_id)
        group_id = student.group_id if student else None
    reviews = review_service.get_user_reviews(db, user_id, group_id)
    return UserAggregates(**aggregation_service.compute_user_aggregates(reviews))


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a review")
def delete_review(
    review_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> None:
    try:
        review = review_service.delete_review(db, review_id)
        group_service.refresh_if_present(db, review.group_id)
        db.commit()
    except ReviewRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
