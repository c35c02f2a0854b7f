"""
Entitlement database models: features, packages, boosts, usage and audit log.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.domain.entitlement import (
    BoostDuration,
    BoostStatus,
    BoostType,
    FeatureType,
    PackageStatus,
    ResetType,
)

from .base import Base, TimestampMixin, ensure_utc, utcnow


class Feature(Base, TimestampMixin):
    """A grantable capability, either a boolean switch or a numeric limit."""

    __tablename__ = "entitlement_features"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    type: Mapped[str] = mapped_column(
        String(20), default=FeatureType.BOOLEAN.value, nullable=False
    )
    reset_type: Mapped[str] = mapped_column(
        String(20), default=ResetType.NONE.value, nullable=False
    )
    rolling_window_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Child features share the parent's limit pool
    parent_feature_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("entitlement_features.id", ondelete="SET NULL"),
        nullable=True,
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    parent: Mapped[Optional["Feature"]] = relationship(
        "Feature", remote_side="Feature.id", lazy="joined", join_depth=1
    )

    __table_args__ = (Index("ix_features_category_sort", "category", "sort_order"),)

    def __repr__(self) -> str:
        return f"<Feature(code={self.code}, type={self.type})>"

    @property
    def is_boolean(self) -> bool:
        return self.type == FeatureType.BOOLEAN.value

    @property
    def is_limit(self) -> bool:
        return self.type == FeatureType.LIMIT.value

    @property
    def is_unlimited(self) -> bool:
        return self.type == FeatureType.UNLIMITED.value

    @property
    def pool_code(self) -> str:
        """Code against which limits and usage are computed."""
        return self.parent.code if self.parent is not None else self.code


class Package(Base, TimestampMixin):
    """A bundle of features provisioned to workspaces."""

    __tablename__ = "entitlement_packages"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    code: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_stackable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_base_package: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    monthly_price: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True)
    yearly_price: Mapped[Optional[float]] = mapped_column(Numeric(10, 2), nullable=True)

    features: Mapped[list["PackageFeature"]] = relationship(
        back_populates="package",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Package(code={self.code}, base={self.is_base_package})>"


class PackageFeature(Base, TimestampMixin):
    """Feature membership in a package, with an optional limit."""

    __tablename__ = "entitlement_package_features"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    package_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("entitlement_packages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feature_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("entitlement_features.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    limit_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    package: Mapped["Package"] = relationship(back_populates="features")
    feature: Mapped["Feature"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("package_id", "feature_id", name="uq_package_feature"),
    )


class WorkspacePackage(Base, TimestampMixin):
    """A package provisioned to a workspace."""

    __tablename__ = "entitlement_workspace_packages"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    workspace_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    package_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("entitlement_packages.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), default=PackageStatus.ACTIVE.value, nullable=False
    )
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    billing_cycle_anchor: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    package: Mapped["Package"] = relationship(lazy="joined")

    __table_args__ = (Index("ix_workspace_packages_ws_status", "workspace_id", "status"),)

    @property
    def is_active(self) -> bool:
        if self.status != PackageStatus.ACTIVE.value:
            return False
        expires = ensure_utc(self.expires_at)
        return expires is None or expires > utcnow()


class Boost(Base, TimestampMixin):
    """An override adding or unlocking capacity outside normal packages."""

    __tablename__ = "entitlement_boosts"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    workspace_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    feature_code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    boost_type: Mapped[str] = mapped_column(
        String(20), default=BoostType.ADD_LIMIT.value, nullable=False
    )
    duration_type: Mapped[str] = mapped_column(
        String(20), default=BoostDuration.CYCLE_BOUND.value, nullable=False
    )
    limit_value: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consumed_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=BoostStatus.ACTIVE.value, nullable=False
    )
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    __table_args__ = (Index("ix_boosts_ws_feature_status", "workspace_id", "feature_code", "status"),)

    @property
    def remaining_limit(self) -> int:
        return max((self.limit_value or 0) - (self.consumed_quantity or 0), 0)

    @property
    def is_usable(self) -> bool:
        """Active, unexpired and (for add_limit boosts) not exhausted."""
        if self.status != BoostStatus.ACTIVE.value:
            return False
        expires = ensure_utc(self.expires_at)
        if expires is not None and expires <= utcnow():
            return False
        if self.boost_type == BoostType.ADD_LIMIT.value and self.remaining_limit <= 0:
            return False
        return True


class UsageRecord(Base, TimestampMixin):
    """One metered consumption of a limit feature."""

    __tablename__ = "entitlement_usage_records"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    workspace_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    feature_code: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_usage_ws_feature_recorded", "workspace_id", "feature_code", "recorded_at"),
    )


class EntitlementLog(Base, TimestampMixin):
    """Audit trail of entitlement changes."""

    __tablename__ = "entitlement_logs"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    workspace_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(20), default="system", nullable=False)
    old_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)


class UsageAlertHistory(Base, TimestampMixin):
    """A usage threshold notification sent to a workspace owner."""

    __tablename__ = "entitlement_usage_alert_history"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    workspace_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    feature_code: Mapped[str] = mapped_column(String(100), nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    notified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    __table_args__ = (
        Index("ix_usage_alerts_ws_feature", "workspace_id", "feature_code", "resolved_at"),
    )

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None
