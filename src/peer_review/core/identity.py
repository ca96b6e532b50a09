"""Identity gateway: credentials, session tokens and identity-change events."""

from __future__ import annotations

import logging
import secrets
import uuid
from datetime import timedelta
from typing import Callable, List, Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import IdentityAccount, IdentitySession
from ..utils.datetime import utcnow
from .config import get_settings
from .errors import IdentityError

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[str]], None]

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    try:
        return pwd_context.verify(password, stored)
    except ValueError:
        # stored value is not a recognised hash
        return False


class IdentityGateway:
    """Authenticates users and issues opaque session tokens.

    Listeners registered with :meth:`subscribe` are called with the new user
    id after a successful authentication and with ``None`` when a session
    ends.
    """

    def __init__(self, session_ttl: Optional[timedelta] = None) -> None:
        self._session_ttl = session_ttl
        self._listeners: List[IdentityListener] = []

    @property
    def session_ttl(self) -> timedelta:
        if self._session_ttl is None:
            return timedelta(hours=get_settings().session_ttl_hours)
        return self._session_ttl

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, user_id: Optional[str]) -> None:
        for listener in list(self._listeners):
            try:
                listener(user_id)
            except Exception:  # pragma: no cover
                logger.exception("identity listener failed")

    def create_account(self, session: Session, *, email: str, password: str) -> str:
        """Register credentials and return the new opaque user id."""

        email = email.strip().lower()
        if not email or not password:
            raise IdentityError("Email and password are required.", status_code=400)
        if len(password) < 6:
            raise IdentityError("Password must be at least 6 characters.", status_code=400)

        existing = session.execute(
            select(IdentityAccount).where(IdentityAccount.email == email)
        ).scalar_one_or_none()
        if existing is not None:
            raise IdentityError("An account with this email already exists.", status_code=409)

        account = IdentityAccount(id=str(uuid.uuid4()), email=email, password_hash=hash_password(password))
        session.add(account)
        session.flush()
        logger.info("identity account created: %s", account.id)
        return account.id

    def authenticate(self, session: Session, *, email: str, password: str) -> Tuple[str, str]:
        """Check credentials and open a session. Returns ``(user_id, token)``."""

        account = session.execute(
            select(IdentityAccount).where(IdentityAccount.email == email.strip().lower())
        ).scalar_one_or_none()
        if account is None or not verify_password(password, account.password_hash):
            raise IdentityError("Invalid email or password.")

        now = utcnow()
        token = secrets.token_hex(32)
        session.add(
            IdentitySession(
                token=token,
                account_id=account.id,
                created_at=now,
                expires_at=now + self.session_ttl,
            )
        )
        session.flush()
        self._notify(account.id)
        return account.id, token

    def resolve_session(self, session: Session, token: str) -> str:
        """Return the user id owning a live token."""

        record = session.get(IdentitySession, token) if token else None
        if record is None or record.ended_at is not None or record.expires_at <= utcnow():
            raise IdentityError("Session is invalid or has expired.")
        return record.account_id

    def end_session(self, session: Session, token: str) -> None:
        record = session.get(IdentitySession, token)
        if record is None or record.ended_at is not None:
            return
        record.ended_at = utcnow()
        session.flush()
        self._notify(None)

    def delete_account(self, session: Session, user_id: str) -> None:
        """Remove credentials and every session of ``user_id``."""

        account = session.get(IdentityAccount, user_id)
        if account is None:
            raise IdentityError(f"Identity account {user_id} not found", status_code=404)
        for record in session.execute(
            select(IdentitySession).where(IdentitySession.account_id == user_id)
        ).scalars().all():
            session.delete(record)
        session.delete(account)
        session.flush()


identity_gateway = IdentityGateway()


def get_identity_gateway() -> IdentityGateway:
    """Return the process-wide gateway (overridable in tests)."""

    return identity_gateway
