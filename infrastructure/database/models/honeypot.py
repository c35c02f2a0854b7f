"""
Honeypot and IP blocklist models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, ensure_utc, utcnow


class HitSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class BlockStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HoneypotHit(Base, TimestampMixin):
    """A request that landed on a trap path."""

    __tablename__ = "honeypot_hits"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, index=True)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bot_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_bot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    severity: Mapped[str] = mapped_column(
        String(20), default=HitSeverity.WARNING.value, nullable=False
    )
    country: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)

    __table_args__ = (
        Index("ix_honeypot_hits_created_at", "created_at"),
        Index("ix_honeypot_hits_severity_created", "severity", "created_at"),
    )


class BlockedIp(Base, TimestampMixin):
    """An IP address on the bouncer blocklist."""

    __tablename__ = "blocked_ips"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, unique=True)
    reason: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=BlockStatus.APPROVED.value, nullable=False
    )
    blocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        if self.status != BlockStatus.APPROVED.value:
            return False
        expires = ensure_utc(self.expires_at)
        return expires is None or expires > utcnow()
