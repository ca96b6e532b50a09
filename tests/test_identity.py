"""Tests for the identity gateway and account service."""

from datetime import timedelta

import pytest

from peer_review.core.errors import IdentityError
from peer_review.core.identity import IdentityGateway, hash_password, verify_password
from peer_review.models import IdentityAccount, UserRole
from peer_review.schemas import Preferences, ProfileUpdate
from peer_review.services import account_service
from peer_review.services.account_service import AccountRuleViolation


def test_password_hash_roundtrip():
    stored = hash_password("correct horse")
    assert stored.startswith("$2")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong horse", stored)
    assert not verify_password("anything", "not-a-hash")


def test_signup_creates_pending_student(session, identity):
    user = account_service.signup(
        session, identity=identity, email="Ana@School.edu", password="secret1", full_name=" Ana Ruiz "
    )
    session.commit()

    assert user.email == "ana@school.edu"
    assert user.full_name == "Ana Ruiz"
    assert user.role == UserRole.STUDENT
    assert user.group_id == "new"
    assert user.preferences == {"email_notifications": True, "dark_mode": False}
    assert session.get(IdentityAccount, user.id) is not None


def test_teacher_signup_has_no_group(session, identity):
    user = account_service.signup(
        session, identity=identity, email="kay@school.edu", password="secret1", full_name="Ms. Kay",
        role=UserRole.TEACHER,
    )
    assert user.group_id is None


def test_duplicate_email_rejected(session, identity):
    account_service.signup(session, identity=identity, email="ana@school.edu", password="secret1", full_name="Ana")
    session.commit()
    with pytest.raises(IdentityError) as exc_info:
        account_service.signup(session, identity=identity, email="ana@school.edu", password="secret2", full_name="A")
    assert exc_info.value.status_code == 409


def test_login_session_lifecycle_notifies_listeners(session, identity):
    events = []
    unsubscribe = identity.subscribe(events.append)
    user = account_service.signup(session, identity=identity, email="ana@school.edu", password="secret1", full_name="Ana")

    logged_in, token = account_service.login(session, identity=identity, email="ana@school.edu", password="secret1")
    assert logged_in.id == user.id
    assert logged_in.last_login_at is not None
    assert identity.resolve_session(session, token) == user.id

    account_service.logout(session, identity=identity, token=token)
    with pytest.raises(IdentityError):
        identity.resolve_session(session, token)

    unsubscribe()
    identity.authenticate(session, email="ana@school.edu", password="secret1")
    assert events == [user.id, None]


def test_wrong_password_rejected(session, identity):
    account_service.signup(session, identity=identity, email="ana@school.edu", password="secret1", full_name="Ana")
    with pytest.raises(IdentityError) as exc_info:
        identity.authenticate(session, email="ana@school.edu", password="nope")
    assert exc_info.value.status_code == 401


def test_expired_session_rejected(session):
    gateway = IdentityGateway(session_ttl=timedelta(seconds=-1))
    gateway.create_account(session, email="ana@school.edu", password="secret1")
    _, token = gateway.authenticate(session, email="ana@school.edu", password="secret1")

    with pytest.raises(IdentityError):
        gateway.resolve_session(session, token)


def test_update_profile_keeps_role(session, identity):
    user = account_service.signup(session, identity=identity, email="ana@school.edu", password="secret1", full_name="Ana")

    updated = account_service.update_profile(
        session,
        user_id=user.id,
        changes=ProfileUpdate(full_name="Ana M. Ruiz", bio="Likes graphs", preferences=Preferences(dark_mode=True)),
    )
    session.commit()

    assert updated.full_name == "Ana M. Ruiz"
    assert updated.bio == "Likes graphs"
    assert updated.preferences["dark_mode"] is True
    assert updated.role == UserRole.STUDENT

    with pytest.raises(AccountRuleViolation):
        account_service.update_profile(session, user_id=user.id, changes=ProfileUpdate(full_name="  "))


def test_list_students_search_and_order(session, identity):
    for email, name in (("ana@school.edu", "Ana"), ("ben@school.edu", "Ben"), ("kay@school.edu", "Kay")):
        account_service.signup(session, identity=identity, email=email, password="secret1", full_name=name)
        session.commit()

    assert [u.full_name for u in account_service.list_students(session, search="BEN")] == ["Ben"]
    names = [u.full_name for u in account_service.list_students(session, newest_first=False)]
    assert len(names) == 3
