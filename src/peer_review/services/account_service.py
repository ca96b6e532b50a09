"""Signup, login and profile management."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..core.context import PENDING_GROUP
from ..core.identity import IdentityGateway
from ..models import User, UserRole, default_preferences
from ..schemas import ProfileUpdate
from ..utils.datetime import utcnow

logger = logging.getLogger(__name__)


class AccountRuleViolation(Exception):
    """Raised when account or profile rules are violated."""

    def __init__(self, detail: str, status_code: int = 400) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


def _ensure_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AccountRuleViolation(f"User {user_id} not found", status_code=404)
    return user


def signup(
    session: Session,
    *,
    identity: IdentityGateway,
    email: str,
    password: str,
    full_name: str,
    role: UserRole = UserRole.STUDENT,
) -> User:
    """Create the identity account and its profile record."""

    full_name = full_name.strip()
    if not full_name:
        raise AccountRuleViolation("Full name is required")

    user_id = identity.create_account(session, email=email, password=password)
    user = User(
        id=user_id,
        email=email.strip().lower(),
        full_name=full_name,
        role=role,
        group_id=PENDING_GROUP if role == UserRole.STUDENT else None,
        preferences=default_preferences(),
    )
    session.add(user)
    session.flush()
    logger.info("user %s signed up as %s", user.id, role.value)
    return user


def login(session: Session, *, identity: IdentityGateway, email: str, password: str) -> Tuple[User, str]:
    """Authenticate and return the profile with a fresh session token."""

    user_id, token = identity.authenticate(session, email=email, password=password)
    user = _ensure_user(session, user_id)
    user.last_login_at = utcnow()
    session.flush()
    return user, token


def logout(session: Session, *, identity: IdentityGateway, token: str) -> None:
    identity.end_session(session, token)


def get_profile(session: Session, user_id: str) -> User:
    return _ensure_user(session, user_id)


def update_profile(session: Session, *, user_id: str, changes: ProfileUpdate) -> User:
    """Apply name, bio and preference edits."""

    user = _ensure_user(session, user_id)
    if changes.full_name is not None:
        if not changes.full_name.strip():
            raise AccountRuleViolation("Full name is required")
        user.full_name = changes.full_name.strip()
    if changes.bio is not None:
        user.bio = changes.bio
    if changes.preferences is not None:
        # reassign so the JSON column is flagged dirty
        user.preferences = {**(user.preferences or {}), **changes.preferences.model_dump()}
    session.flush()
    return user


def list_students(
    session: Session,
    *,
    search: Optional[str] = None,
    newest_first: bool = True,
) -> Sequence[User]:
    """Students filtered by name or email, ordered by signup time."""

    stmt = select(User).where(User.role == UserRole.STUDENT)
    if search:
        term = search.strip().lower()
        stmt = stmt.where(
            or_(
                func.lower(User.full_name).contains(term),
                func.lower(User.email).contains(term),
            )
        )
    order = User.created_at.desc() if newest_first else User.created_at.asc()
    return session.execute(stmt.order_by(order, User.id.asc())).scalars().all()
