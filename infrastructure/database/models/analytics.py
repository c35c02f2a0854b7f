"""
First-party web analytics models.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, utcnow


class AnalyticsWebsite(Base, TimestampMixin):
    """A tracked website belonging to a workspace."""

    __tablename__ = "analytics_websites"

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
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    host: Mapped[str] = mapped_column(String(255), nullable=False)
    tracking_type: Mapped[str] = mapped_column(String(20), default="lightweight", nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    public_stats_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Comma or newline separated
    excluded_ips: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    pixel_key: Mapped[str] = mapped_column(String(64), nullable=False)


class AnalyticsSession(Base):
    """A visitor session."""

    __tablename__ = "analytics_sessions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    website_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("analytics_websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    pageviews: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_bounce: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    landing_page: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    __table_args__ = (Index("ix_analytics_sessions_site_started", "website_id", "started_at"),)

    @property
    def duration_seconds(self) -> int:
        if self.ended_at is None:
            return 0
        return max(int((self.ended_at - self.started_at).total_seconds()), 0)


class AnalyticsEvent(Base):
    """A pageview or custom event."""

    __tablename__ = "analytics_events"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    website_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("analytics_websites.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("analytics_sessions.id", ondelete="CASCADE"),
        nullable=True,
    )
    visitor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="pageview", nullable=False)
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_analytics_events_site_type_created", "website_id", "type", "created_at"),
    )
