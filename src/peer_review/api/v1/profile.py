"""Profile endpoints for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...core.context import SessionContext
from ...core.database import get_db
from ...schemas import ProfileUpdate, UserRead
from ...services import account_service
from ...services.account_service import AccountRuleViolation
from .deps import get_session_context

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserRead, summary="Current profile")
def read_profile(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> UserRead:
    return account_service.get_profile(db, context.user_id)


@router.patch("", response_model=UserRead, summary="Update profile")
def update_profile(
    payload: ProfileUpdate,
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> UserRead:
    """Edit name, bio or preferences. Role and email cannot be changed.

    Example request body::

        {
            "full_name": "Ana M. Ruiz",
            "preferences": {"email_notifications": false, "dark_mode": true}
        }
    """

    try:
        user = account_service.update_profile(db, user_id=context.user_id, changes=payload)
        db.commit()
        db.refresh(user)
        return user
    except AccountRuleViolation as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
