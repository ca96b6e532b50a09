"""Student roster endpoints (teacher only)."""

from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...core.context import SessionContext
from ...core.database import get_db
from ...core.identity import IdentityGateway, get_identity_gateway
from ...schemas import StudentAssignment, StudentDeletionReport, UserRead
from ...services import account_service, group_service
from ...services.group_service import GroupRuleViolation, PartialCascadeError
from .deps import require_teacher

router = APIRouter(prefix="/students", tags=["students"])


@router.get("", response_model=List[UserRead], summary="List students")
def list_students(
    *,
    search: Optional[str] = Query(None, description="Match against name or email"),
    order: Literal["newest", "oldest"] = Query("newest", description="Sort by signup time"),
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> List[UserRead]:
    return list(account_service.list_students(db, search=search, newest_first=order == "newest"))


@router.get("/unassigned", response_model=List[UserRead], summary="Students without a group")
def unassigned_students(
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> List[UserRead]:
    return list(group_service.list_unassigned_students(db))


@router.put("/assignment", response_model=UserRead, summary="Assign or unassign a student")
def assign_student(
    payload: StudentAssignment,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
) -> UserRead:
    """Move a student into a group; ``"unassigned"`` removes them from it.

    Example request body::

        {
            "student_id": "9a1b2c3d-4e5f-4a6b-8c7d-0e1f2a3b4c5d",
            "group_id": "unassigned"
        }
    """

    try:
        student = group_service.assign_student(db, student_id=payload.student_id, group_id=payload.group_id)
        db.commit()
        db.refresh(student)
        return student
    except GroupRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.delete("/{student_id}", response_model=StudentDeletionReport, summary="Delete a student account")
def delete_student(
    student_id: str,
    _: SessionContext = Depends(require_teacher),
    db: Session = Depends(get_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
) -> StudentDeletionReport:
    """Remove the student's authored reviews, profile and credentials.

    ``identity_deleted`` is false when the credentials could not be removed;
    the review and profile deletions are kept regardless.
    """

    try:
        result = group_service.delete_student(db, student_id=student_id, identity=identity)
        db.commit()
    except PartialCascadeError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail={"message": exc.detail, "completed": exc.completed},
        ) from exc
    except GroupRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return StudentDeletionReport(
        student_id=result.student_id,
        reviews_deleted=result.reviews_deleted,
        identity_deleted=result.identity_deleted,
    )
