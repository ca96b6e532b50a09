"""Group management endpoints (teacher only)."""

from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.context import SessionContext
from ...core.database import get_db
from ...models import Group
from ...schemas import GroupCreate, GroupDeletionReport, GroupDetail, GroupRead, RubricAverages, UserSummary
from ...services import group_service
from ...services.group_service import GroupRuleViolation, PartialCascadeError
from .deps import require_teacher

router = APIRouter(prefix="/groups", tags=["groups"])


def _group_read(group: Group, members: int, averages: dict) -> GroupRead:
    return GroupRead(
        id=group.id,
        name=group.name,
        created_at=group.created_at,
        member_count=members,
        averages=RubricAverages(**averages),
        averages_refreshed_at=group.averages_refreshed_at,
    )


@router.post(
    "",
    response_model=GroupRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group",
    responses={
        201: {
            "description": "Group created",
            "content": {
                "application/json": {
                    "example": {
                        "id": "c2d4e6f8-0a1b-4c3d-8e5f-7a9b1c3d5e7f",
                        "name": "Team Alpha",
                        "created_at": "2025-03-01T09:00:00",
                        "member_count": 0,
                        "averages": {
                            "quality_of_contribution": None,
                            "level_of_participation": None,
                            "collaboration": None,
                            "overall_contribution": None,
                            "review_count": 0,
                        },
                        "averages_refreshed_at": None,
                    }
                }
            },
        },
        400: {"description": "Blank group name"},
    },
)
def create_group(
    payload: GroupCreate,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> GroupRead:
    """Create an empty group.

    Example request body::

        {"name": " Team Alpha "}
    """

    try:
        group = group_service.create_group(db, name=payload.name)
        db.commit()
        db.refresh(group)
    except GroupRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return _group_read(group, 0, group_service.live_averages(db, group.id))


@router.get("", response_model=List[GroupRead], summary="List groups")
def list_groups(
    *,
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    order: Literal["newest", "oldest"] = Query("newest", description="Sort by creation time"),
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum items to return"),
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> List[GroupRead]:
    rows = group_service.list_groups(db, search=search, newest_first=order == "newest", limit=limit)
    return [_group_read(group, members, averages) for group, members, averages in rows]


@router.get("/{group_id}", response_model=GroupDetail, summary="Group with members")
def read_group(
    group_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> GroupDetail:
    try:
        group = group_service.get_group(db, group_id)
        members = group_service.list_group_members(db, group_id)
    except GroupRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc

    summary = _group_read(group, len(members), group_service.live_averages(db, group_id))
    return GroupDetail(
        **summary.model_dump(),
        members=[UserSummary.model_validate(member) for member in members],
    )


@router.delete(
    "/{group_id}",
    response_model=GroupDeletionReport,
    summary="Delete a group and unassign its members",
    responses={
        404: {"description": "Group not found"},
        500: {"description": "Deletion stopped partway; some members may already be unassigned"},
    },
)
def delete_group(
    group_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> GroupDeletionReport:
    try:
        report = group_service.delete_group(db, group_id=group_id)
    except PartialCascadeError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"message": exc.detail, "unassigned_student_ids": exc.completed},
        ) from exc
    except GroupRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return GroupDeletionReport(group_id=report.group_id, unassigned_student_ids=report.unassigned_student_ids)


@router.get("/{group_id}/members", response_model=List[UserSummary], summary="Members of a group")
def group_members(
    group_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> List[UserSummary]:
    try:
        return list(group_service.list_group_members(db, group_id))
    except GroupRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get("/{group_id}/summary", response_model=RubricAverages, summary="Live rubric averages of a group")
def group_summary(
    group_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> RubricAverages:
    """Means over every review in the group, one decimal, missing ratings skipped."""

    try:
        group_service.get_group(db, group_id)
    except GroupRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return RubricAverages(**group_service.live_averages(db, group_id))
