"""Group lifecycle and student assignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.context import PENDING_GROUP, has_assigned_group
from ..core.errors import IdentityError
from ..core.identity import IdentityGateway
from ..models import Group, Review, User, UserRole
from ..utils.datetime import utcnow
from . import aggregation_service, review_service

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"


class GroupRuleViolation(Exception):
    """Raised when group management rules are violated."""

    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class PartialCascadeError(GroupRuleViolation):
    """A cascade stopped midway; writes already applied are kept."""

    def __init__(self, detail: str, completed: List[str]) -> None:
        super().__init__(detail, status_code=500)
        self.completed = completed


@dataclass
class StudentDeletion:
    student_id: str
    reviews_deleted: int
    identity_deleted: bool


@dataclass
class GroupDeletion:
    group_id: str
    unassigned_student_ids: List[str] = field(default_factory=list)


def membership_state(group_id: Optional[str]) -> str:
    """Classify a student's group reference."""

    if group_id == PENDING_GROUP:
        return "pending_new"
    if has_assigned_group(group_id):
        return "assigned"
    return "unassigned"


def _ensure_group(session: Session, group_id: str) -> Group:
    group = session.get(Group, group_id) if group_id else None
    if group is None:
        raise GroupRuleViolation(f"Group {group_id} not found", status_code=404)
    return group


def _ensure_student(session: Session, student_id: str) -> User:
    student = session.get(User, student_id) if student_id else None
    if student is None or student.role != UserRole.STUDENT:
        raise GroupRuleViolation(f"Student {student_id} not found", status_code=404)
    return student


def create_group(session: Session, *, name: Optional[str]) -> Group:
    """Insert a group; the id is assigned by the store before returning."""

    cleaned = (name or "").strip()
    if not cleaned:
        raise GroupRuleViolation("Group name is required")

    group = Group(name=cleaned)
    session.add(group)
    session.flush()
    session.refresh(group)
    logger.info("group %s created: %s", group.id, group.name)
    return group


def get_group(session: Session, group_id: str) -> Group:
    return _ensure_group(session, group_id)


def member_count(session: Session, group_id: str) -> int:
    stmt = select(func.count(User.id)).where(User.group_id == group_id)
    return session.execute(stmt).scalar_one()


def list_group_members(session: Session, group_id: str) -> Sequence[User]:
    _ensure_group(session, group_id)
    stmt = select(User).where(User.group_id == group_id).order_by(User.full_name.asc())
    return session.execute(stmt).scalars().all()


def live_averages(session: Session, group_id: str) -> dict:
    """Rubric means computed from the group's reviews at read time."""

    return aggregation_service.compute_group_averages(review_service.get_group_reviews(session, group_id))


def list_groups(
    session: Session,
    *,
    search: Optional[str] = None,
    newest_first: bool = True,
    limit: Optional[int] = None,
) -> List[Tuple[Group, int, dict]]:
    """Groups with their member counts and live averages."""

    order = Group.created_at.desc() if newest_first else Group.created_at.asc()
    stmt = select(Group).order_by(order, Group.id.asc())
    if search:
        stmt = stmt.where(func.lower(Group.name).contains(search.strip().lower()))
    if limit:
        stmt = stmt.limit(limit)

    groups = session.execute(stmt).scalars().all()
    return [(group, member_count(session, group.id), live_averages(session, group.id)) for group in groups]


def refresh_group_averages(session: Session, group_id: str) -> Group:
    """Rewrite the cached average columns from the current reviews."""

    group = _ensure_group(session, group_id)
    averages = live_averages(session, group_id)
    group.avg_quality_of_contribution = averages["quality_of_contribution"]
    group.avg_level_of_participation = averages["level_of_participation"]
    group.avg_collaboration = averages["collaboration"]
    group.avg_overall_contribution = averages["overall_contribution"]
    group.averages_refreshed_at = utcnow()
    session.flush()
    return group


def refresh_if_present(session: Session, group_id: str) -> bool:
    """Refresh cached averages unless the group has since been deleted."""

    if session.get(Group, group_id) is None:
        return False
    refresh_group_averages(session, group_id)
    return True


def refresh_all_group_averages(session: Session) -> int:
    group_ids = session.execute(select(Group.id)).scalars().all()
    for group_id in group_ids:
        refresh_group_averages(session, group_id)
    return len(group_ids)


def delete_group(session: Session, *, group_id: str) -> GroupDeletion:
    """Unassign every member one write at a time, then remove the group.

    Each write is committed on its own. If a later step fails the earlier
    ones stay applied and :class:`PartialCascadeError` reports them.
    """

    _ensure_group(session, group_id)
    report = GroupDeletion(group_id=group_id)
    member_ids = session.execute(select(User.id).where(User.group_id == group_id)).scalars().all()

    try:
        for member_id in member_ids:
            member = session.get(User, member_id)
            member.group_id = None
            session.commit()
            report.unassigned_student_ids.append(member_id)

        session.delete(session.get(Group, group_id))
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(
            "delete_group %s stopped after unassigning %d of %d members: %s",
            group_id,
            len(report.unassigned_student_ids),
            len(member_ids),
            exc,
        )
        raise PartialCascadeError(
            f"Group {group_id} deletion incomplete: {exc}",
            completed=list(report.unassigned_student_ids),
        ) from exc

    logger.info("group %s deleted, %d members unassigned", group_id, len(member_ids))
    return report


def assign_student(session: Session, *, student_id: str, group_id: Optional[str]) -> User:
    """Set a student's group, or clear it with ``"unassigned"``."""

    if not group_id:
        raise GroupRuleViolation("Please select a group")

    student = _ensure_student(session, student_id)
    if group_id == UNASSIGNED:
        student.group_id = None
    else:
        _ensure_group(session, group_id)
        student.group_id = group_id
    session.flush()
    logger.info("student %s assigned to %s", student_id, student.group_id)
    return student


def delete_student(session: Session, *, student_id: str, identity: IdentityGateway) -> StudentDeletion:
    """Remove a student's authored reviews, profile and identity account.

    Reviews and profile deletions are committed before the identity account is
    touched; a failure there is logged and reported, never rolled back.
    """

    student = _ensure_student(session, student_id)
    authored = session.execute(select(Review).where(Review.reviewer_id == student_id)).scalars().all()
    affected_groups = {review.group_id for review in authored}

    try:
        for review in authored:
            session.delete(review)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("delete_student %s failed while removing reviews: %s", student_id, exc)
        raise PartialCascadeError(f"Failed to delete reviews of {student_id}: {exc}", completed=[]) from exc

    try:
        session.delete(student)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("delete_student %s removed %d reviews but not the profile: %s", student_id, len(authored), exc)
        raise PartialCascadeError(
            f"Reviews of {student_id} deleted but the profile was not: {exc}",
            completed=["reviews"],
        ) from exc

    identity_deleted = True
    try:
        identity.delete_account(session, student_id)
        session.commit()
    except (IdentityError, SQLAlchemyError) as exc:
        session.rollback()
        identity_deleted = False
        logger.error("identity account of %s not deleted: %s", student_id, exc)

    for affected in affected_groups:
        refresh_if_present(session, affected)

    logger.info("student %s deleted with %d authored reviews", student_id, len(authored))
    return StudentDeletion(
        student_id=student_id,
        reviews_deleted=len(authored),
        identity_deleted=identity_deleted,
    )


def list_unassigned_students(session: Session) -> Sequence[User]:
    stmt = (
        select(User)
        .where(User.role == UserRole.STUDENT)
        .where((User.group_id.is_(None)) | (User.group_id == PENDING_GROUP))
        .order_by(User.created_at.desc())
    )
    return session.execute(stmt).scalars().all()
