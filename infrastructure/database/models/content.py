"""
Native content database models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class ContentType(str, Enum):
    """Origin of a content item."""

    NATIVE = "native"
    HOSTUK = "hostuk"
    SATELLITE = "satellite"
    WORDPRESS = "wordpress"


class ContentKind(str, Enum):
    POST = "post"
    PAGE = "page"


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    FUTURE = "future"
    PUBLISH = "publish"
    PRIVATE = "private"


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"
    STALE = "stale"


class TaxonomyType(str, Enum):
    CATEGORY = "category"
    TAG = "tag"


class RevisionChangeType(str, Enum):
    EDIT = "edit"
    AUTOSAVE = "autosave"
    PUBLISH = "publish"
    SCHEDULE = "schedule"
    RESTORE = "restore"


class WebhookStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


content_item_taxonomies = Table(
    "content_item_taxonomy",
    Base.metadata,
    Column(
        "content_item_id",
        UUID(as_uuid=False),
        ForeignKey("content_items.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "taxonomy_id",
        UUID(as_uuid=False),
        ForeignKey("content_taxonomies.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class ContentTaxonomy(Base, TimestampMixin):
    """A category or tag scoped to a workspace."""

    __tablename__ = "content_taxonomies"

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
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (
        UniqueConstraint("workspace_id", "type", "slug", name="uq_taxonomy_ws_type_slug"),
    )


class ContentMedia(Base, TimestampMixin):
    """Media library entry."""

    __tablename__ = "content_media"

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
    type: Mapped[str] = mapped_column(String(20), default="image", nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    alt_text: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class ContentItem(Base, TimestampMixin):
    """A post or page owned by a workspace."""

    __tablename__ = "content_items"

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
    author_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_edited_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    content_type: Mapped[str] = mapped_column(
        String(20), default=ContentType.NATIVE.value, nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), default=ContentKind.POST.value, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ContentStatus.DRAFT.value, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    excerpt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    seo_meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    featured_media_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("content_media.id", ondelete="SET NULL"),
        nullable=True,
    )
    publish_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sync_status: Mapped[str] = mapped_column(
        String(20), default=SyncStatus.SYNCED.value, nullable=False
    )
    synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    taxonomies: Mapped[list["ContentTaxonomy"]] = relationship(
        secondary=content_item_taxonomies,
        lazy="selectin",
    )
    featured_media: Mapped[Optional["ContentMedia"]] = relationship(lazy="joined")

    __table_args__ = (
        Index("ix_content_items_ws_status", "workspace_id", "status"),
        Index("ix_content_items_ws_type", "workspace_id", "type"),
        Index("ix_content_items_ws_slug", "workspace_id", "slug"),
    )

    def __repr__(self) -> str:
        return f"<ContentItem(id={self.id}, type={self.type}, status={self.status})>"

    @property
    def categories(self) -> list["ContentTaxonomy"]:
        return [t for t in self.taxonomies if t.type == TaxonomyType.CATEGORY.value]

    @property
    def tags(self) -> list["ContentTaxonomy"]:
        return [t for t in self.taxonomies if t.type == TaxonomyType.TAG.value]


class ContentRevision(Base, TimestampMixin):
    """Snapshot of a content item taken on save."""

    __tablename__ = "content_revisions"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    content_item_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("content_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    revision_number: Mapped[int] = mapped_column(Integer, nullable=False)
    change_type: Mapped[str] = mapped_column(
        String(20), default=RevisionChangeType.EDIT.value, nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    excerpt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    seo_meta: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)


class ContentWebhookLog(Base, TimestampMixin):
    """An inbound connector webhook awaiting processing."""

    __tablename__ = "content_webhook_logs"

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
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=WebhookStatus.PENDING.value, nullable=False, index=True
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
