"""
User database model.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, ensure_utc, utcnow


class UserStatus(str, Enum):
    """User account status enumeration."""

    PENDING = "pending"  # Email not verified
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class UserTier(str, Enum):
    """Account-level plan classification."""

    FREE = "free"
    APOLLO = "apollo"
    HADES = "hades"


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Basic info
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authentication
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default=UserStatus.ACTIVE.value,
        nullable=False,
    )
    email_verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Tier
    tier: Mapped[str] = mapped_column(
        String(20),
        default=UserTier.FREE.value,
        nullable=False,
    )
    tier_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    cached_stats: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Workspace switcher selection
    current_workspace_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workspaces.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_users_email_status", "email", "status"),
        Index("ix_users_tier", "tier", "tier_expires_at"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, tier={self.tier})>"

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def effective_tier(self) -> UserTier:
        """Tier in force right now; an expired paid tier reads as free."""
        expires = ensure_utc(self.tier_expires_at)
        if self.tier != UserTier.FREE.value and expires is not None and expires < utcnow():
            return UserTier.FREE
        try:
            return UserTier(self.tier)
        except ValueError:
            return UserTier.FREE

    @property
    def is_hades(self) -> bool:
        return self.effective_tier == UserTier.HADES

    @property
    def is_apollo(self) -> bool:
        return self.effective_tier == UserTier.APOLLO

    @property
    def is_paid(self) -> bool:
        return self.effective_tier in (UserTier.APOLLO, UserTier.HADES)

    @property
    def email_verified(self) -> bool:
        """Hades accounts are always treated as verified."""
        return self.is_hades or self.email_verified_at is not None

    @property
    def max_workspaces(self) -> int:
        """Workspace allowance for the effective tier; -1 means unlimited."""
        from core.plans import get_tier

        return get_tier(self.effective_tier.value)["max_workspaces"]
