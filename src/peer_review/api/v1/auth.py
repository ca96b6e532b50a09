"""Signup, login and logout endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...core.context import SessionContext
from ...core.database import get_db
from ...core.errors import IdentityError
from ...core.identity import IdentityGateway, get_identity_gateway
from ...schemas import LoginRequest, SessionRead, SignupRequest, UserRead
from ...services import account_service
from ...services.account_service import AccountRuleViolation
from .deps import get_session_context

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    responses={
        400: {"description": "Invalid signup data"},
        409: {"description": "Email already registered"},
    },
)
def signup(
    payload: SignupRequest,
    db: Session = Depends(get_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
) -> UserRead:
    """Register credentials and a profile.

    Example request body::

        {
            "email": "ana.ruiz@school.edu",
            "password": "s3cret-pass",
            "full_name": "Ana Ruiz",
            "role": "student"
        }
    """

    try:
        user = account_service.signup(
            db,
            identity=identity,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            role=payload.role,
        )
        db.commit()
        db.refresh(user)
        return user
    except (AccountRuleViolation, IdentityError) as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post("/login", response_model=SessionRead, summary="Open a session")
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
) -> SessionRead:
    try:
        user, token = account_service.login(db, identity=identity, email=payload.email, password=payload.password)
        db.commit()
        db.refresh(user)
        return SessionRead(access_token=token, user=UserRead.model_validate(user))
    except (AccountRuleViolation, IdentityError) as exc:
        db.rollback()
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="End the current session")
def logout(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
    identity: IdentityGateway = Depends(get_identity_gateway),
) -> None:
    account_service.logout(db, identity=identity, token=context.token)
    db.commit()


@router.get("/me", response_model=UserRead, summary="Profile of the session owner")
def me(
    context: SessionContext = Depends(get_session_context),
    db: Session = Depends(get_db),
) -> UserRead:
    return account_service.get_profile(db, context.user_id)
