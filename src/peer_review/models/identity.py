"""Identity provider tables: credentials and session tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint

from ..core.database import Base
from ..utils.datetime import utcnow


class IdentityAccount(Base):
    """Credential record; its id doubles as the user profile id."""

    __tablename__ = "identity_accounts"
    __table_args__ = (
        UniqueConstraint("email", name="identity_accounts_email_unique"),
    )

    id = Column(String(36), primary_key=True)
    email = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class IdentitySession(Base):
    """Issued session token."""

    __tablename__ = "identity_sessions"

    token = Column(String(64), primary_key=True)
    account_id = Column(String(36), ForeignKey("identity_accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime)
