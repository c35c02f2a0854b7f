"""
Admin database models.
"""

from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import Index, String, JSON, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class AuditAction(str, Enum):
    """Platform administration actions."""

    # Platform panel
    EMAIL_VERIFIED = "email_verified"
    CACHE_CLEARED = "cache_cleared"
    QUEUE_RESTARTED = "queue_restarted"

    # Single-user panel
    TIER_CHANGED = "tier_changed"
    VERIFICATION_CHANGED = "verification_changed"
    VERIFICATION_RESENT = "verification_resent"
    DATA_EXPORT = "data_export"
    DELETION_SCHEDULED = "deletion_scheduled"
    USER_DELETED = "user_deleted"
    DELETION_CANCELLED = "deletion_cancelled"
    USER_ANONYMIZED = "user_anonymized"
    PACKAGE_PROVISIONED = "package_provisioned"
    PACKAGE_REVOKED = "package_revoked"
    ENTITLEMENT_PROVISIONED = "entitlement_provisioned"
    BOOST_REMOVED = "boost_removed"

    # Entitlement catalogue
    PACKAGE_CREATED = "package_created"
    PACKAGE_UPDATED = "package_updated"
    PACKAGE_DELETED = "package_deleted"
    FEATURE_CREATED = "feature_created"
    FEATURE_UPDATED = "feature_updated"
    FEATURE_DELETED = "feature_deleted"

    # Security
    IP_BLOCKED = "ip_blocked"
    HONEYPOT_PURGED = "honeypot_purged"


class AuditTargetType(str, Enum):
    """Admin audit log target types."""

    USER = "user"
    WORKSPACE = "workspace"
    PACKAGE = "package"
    FEATURE = "feature"
    BOOST = "boost"
    IP = "ip"
    SYSTEM = "system"


class AdminAuditLog(Base, TimestampMixin):
    """Tracks every state-changing action taken in platform administration."""

    __tablename__ = "admin_audit_logs"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    admin_user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    target_user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    target_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # {"description": ..., "old_value": ..., "new_value": ...}
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)

    admin_user: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[admin_user_id], lazy="joined"
    )

    __table_args__ = (
        Index("ix_admin_audit_logs_created_at", "created_at"),
        Index("ix_admin_audit_logs_target", "target_type", "target_id"),
    )

    def __repr__(self) -> str:
        return f"<AdminAuditLog(action={self.action}, target={self.target_type}:{self.target_id})>"
