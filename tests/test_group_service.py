"""Tests for group lifecycle, assignment and cascading deletes."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from peer_review.core.context import SessionContext
from peer_review.core.errors import IdentityError
from peer_review.models import Group, Review, User, UserRole
from peer_review.schemas import ReviewCreate
from peer_review.services import account_service, group_service, review_service
from peer_review.services.group_service import GroupRuleViolation, PartialCascadeError

NOW = datetime(2025, 3, 4, 15, 0, tzinfo=timezone.utc)


def rate(session, reviewer, reviewee, group_id, score=4):
    payload = ReviewCreate(
        reviewed_user_id=reviewee.id,
        group_id=group_id,
        attendance="yes",
        punctuality="yes",
        environment="conducive",
        quality_of_contribution=score,
        level_of_participation=score,
        collaboration=score,
        overall_contribution=score,
        areas_for_improvement="notes",
        suggestions="more notes",
    )
    review = review_service.submit_review(session, context=SessionContext.from_user(reviewer), payload=payload, now=NOW)
    session.commit()
    return review


def test_create_group_trims_name(session):
    group = group_service.create_group(session, name=" Team Alpha ")
    session.commit()

    assert group.id
    assert group.name == "Team Alpha"
    assert group.avg_collaboration is None
    assert group_service.member_count(session, group.id) == 0


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_group_rejects_blank_name(session, name):
    with pytest.raises(GroupRuleViolation, match="Group name is required"):
        group_service.create_group(session, name=name)
    assert session.execute(select(Group)).scalars().all() == []


def test_delete_group_unassigns_every_member(session, make_group, make_student):
    group = make_group("Team Alpha")
    keep = make_group("Team Beta")
    members = [make_student(f"Student {i}", group.id) for i in range(3)]
    outsider = make_student("Outsider", keep.id)

    report = group_service.delete_group(session, group_id=group.id)

    assert sorted(report.unassigned_student_ids) == sorted(m.id for m in members)
    for member in members:
        assert session.get(User, member.id).group_id is None
    assert session.get(User, outsider.id).group_id == keep.id
    remaining = [g.id for g, _, _ in group_service.list_groups(session)]
    assert remaining == [keep.id]


def test_delete_group_reports_partial_cascade(session, make_group, make_student, monkeypatch):
    group = make_group("Team Alpha")
    members = [make_student(f"Student {i}", group.id) for i in range(2)]
    real_delete = session.delete

    def failing_delete(instance):
        if isinstance(instance, Group):
            raise SQLAlchemyError("store unavailable")
        return real_delete(instance)

    monkeypatch.setattr(session, "delete", failing_delete)

    with pytest.raises(PartialCascadeError) as exc_info:
        group_service.delete_group(session, group_id=group.id)

    assert sorted(exc_info.value.completed) == sorted(m.id for m in members)
    for member in members:
        assert session.get(User, member.id).group_id is None
    assert session.get(Group, group.id) is not None


def test_delete_unknown_group(session):
    with pytest.raises(GroupRuleViolation) as exc_info:
        group_service.delete_group(session, group_id="missing")
    assert exc_info.value.status_code == 404


def test_assign_and_unassign_student(session, make_group, make_student):
    first = make_group("Team Alpha")
    second = make_group("Team Beta")
    student = make_student("Nia", "new")
    assert group_service.membership_state(student.group_id) == "pending_new"

    group_service.assign_student(session, student_id=student.id, group_id=first.id)
    assert student.group_id == first.id
    assert group_service.membership_state(student.group_id) == "assigned"

    group_service.assign_student(session, student_id=student.id, group_id=second.id)
    assert student.group_id == second.id

    group_service.assign_student(session, student_id=student.id, group_id="unassigned")
    assert student.group_id is None
    assert group_service.membership_state(student.group_id) == "unassigned"


def test_assign_to_unknown_group_rejected(session, make_student):
    student = make_student("Nia")
    with pytest.raises(GroupRuleViolation) as exc_info:
        group_service.assign_student(session, student_id=student.id, group_id="nope")
    assert exc_info.value.status_code == 404
    assert student.group_id is None


def test_assign_rejects_teacher(session, make_group, make_student):
    group = make_group()
    teacher = make_student("Ms. Kay", role=UserRole.TEACHER)
    with pytest.raises(GroupRuleViolation):
        group_service.assign_student(session, student_id=teacher.id, group_id=group.id)


def test_delete_student_removes_only_authored_reviews(session, make_group, identity):
    group = make_group("G1")
    doomed = account_service.signup(
        session, identity=identity, email="dee@school.edu", password="secret1", full_name="Dee"
    )
    peer = account_service.signup(
        session, identity=identity, email="pat@school.edu", password="secret1", full_name="Pat"
    )
    session.commit()
    group_service.assign_student(session, student_id=doomed.id, group_id=group.id)
    group_service.assign_student(session, student_id=peer.id, group_id=group.id)
    session.commit()

    rate(session, doomed, peer, group.id)
    kept = rate(session, peer, doomed, group.id)

    result = group_service.delete_student(session, student_id=doomed.id, identity=identity)
    session.commit()

    assert result.reviews_deleted == 1
    assert result.identity_deleted is True
    assert session.get(User, doomed.id) is None
    remaining = session.execute(select(Review)).scalars().all()
    assert [review.id for review in remaining] == [kept.id]


class BrokenIdentity:
    def delete_account(self, session, user_id):
        raise IdentityError("provider offline", status_code=503)


def test_identity_failure_does_not_restore_deleted_records(session, make_group, make_student):
    group = make_group("G1")
    doomed = make_student("Dee", group.id)
    peer = make_student("Pat", group.id)
    rate(session, doomed, peer, group.id)

    result = group_service.delete_student(session, student_id=doomed.id, identity=BrokenIdentity())

    assert result.identity_deleted is False
    assert result.reviews_deleted == 1
    assert session.get(User, doomed.id) is None
    assert session.execute(select(Review)).scalars().all() == []


def test_refresh_group_averages_updates_cache(session, make_group, make_student):
    group = make_group("G1")
    ana = make_student("Ana", group.id)
    ben = make_student("Ben", group.id)
    cy = make_student("Cy", group.id)
    rate(session, ana, cy, group.id, score=5)
    rate(session, ben, cy, group.id, score=2)

    group_service.refresh_group_averages(session, group.id)
    session.commit()

    assert group.avg_collaboration == 3.5
    assert group.averages_refreshed_at is not None
    assert group_service.refresh_all_group_averages(session) == 1


def test_list_groups_search_and_order(session):
    for name in ("Alpha Squad", "Beta Crew", "alpha team"):
        group_service.create_group(session, name=name)
        session.commit()

    names = [group.name for group, _, _ in group_service.list_groups(session, search="ALPHA")]
    assert sorted(names) == ["Alpha Squad", "alpha team"]
    assert len(group_service.list_groups(session, limit=2)) == 2


def test_unassigned_students_include_pending_signups(session, make_group, make_student):
    group = make_group()
    pending = make_student("Pending", "new")
    cleared = make_student("Cleared", None)
    make_student("Placed", group.id)
    make_student("Teacher", None, role=UserRole.TEACHER)

    ids = {student.id for student in group_service.list_unassigned_students(session)}
    assert ids == {pending.id, cleared.id}
