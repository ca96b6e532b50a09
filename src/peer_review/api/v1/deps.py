"""Request-scoped dependencies: caller identity and role gates."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ...core.context import SessionContext
from ...core.database import get_db
from ...core.errors import IdentityError
from ...core.identity import IdentityGateway, get_identity_gateway
from ...models import User


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return authorization[len("Bearer "):]


def get_session_context(
    token: str = Depends(bearer_token),
    db: Session = Depends(get_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
) -> SessionContext:
    """Build the caller's context from a live session token."""

    try:
        user_id = identity.resolve_session(db, token)
    except IdentityError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail=exc.detail,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Profile not found")
    return SessionContext.from_user(user, token=token)


def require_teacher(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if not context.is_teacher:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Teacher access required")
    return context


def require_student(context: SessionContext = Depends(get_session_context)) -> SessionContext:
    if context.is_teacher:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student access required")
    return context
