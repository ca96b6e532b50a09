"""Pydantic schemas for accounts and profiles."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ..models import UserRole


class Preferences(BaseModel):
    """User-controlled flags."""

    email_notifications: bool = True
    dark_mode: bool = False


class SignupRequest(BaseModel):
    """Request body for creating an account."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=120)
    role: UserRole = UserRole.STUDENT


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserRead(BaseModel):
    """Profile projection returned to the owner and to teachers."""

    id: str
    email: str
    full_name: str
    bio: Optional[str] = None
    role: UserRole
    group_id: Optional[str] = None
    preferences: Preferences
    created_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """Lightweight projection of a group member."""

    id: str
    full_name: str
    email: str

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Editable profile fields. Role and email are fixed."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    bio: Optional[str] = Field(None, max_length=500)
    preferences: Optional[Preferences] = None


class SessionRead(BaseModel):
    """Response returned after a successful login."""

    access_token: str
    token_type: str = "bearer"
    user: UserRead
