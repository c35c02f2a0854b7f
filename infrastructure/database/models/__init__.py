"""
SQLAlchemy database models.
"""

from .account import AccountDeletionRequest, AIServiceCredential, UserSetting
from .admin import AdminAuditLog, AuditAction, AuditTargetType
from .analytics import AnalyticsEvent, AnalyticsSession, AnalyticsWebsite
from .base import Base, TimestampMixin, ensure_utc, utcnow
from .content import (
    ContentItem,
    ContentKind,
    ContentMedia,
    ContentRevision,
    ContentStatus,
    ContentTaxonomy,
    ContentType,
    ContentWebhookLog,
    RevisionChangeType,
    SyncStatus,
    TaxonomyType,
    WebhookStatus,
    content_item_taxonomies,
)
from .entitlement import (
    Boost,
    EntitlementLog,
    Feature,
    Package,
    PackageFeature,
    UsageAlertHistory,
    UsageRecord,
    WorkspacePackage,
)
from .honeypot import BlockedIp, BlockStatus, HitSeverity, HoneypotHit
from .prompt import Prompt, PromptVersion
from .user import User, UserStatus, UserTier
from .workspace import Workspace, WorkspaceMember, WorkspaceRole

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "ensure_utc",
    "User",
    "UserStatus",
    "UserTier",
    "Workspace",
    "WorkspaceMember",
    "WorkspaceRole",
    "Feature",
    "Package",
    "PackageFeature",
    "WorkspacePackage",
    "Boost",
    "UsageRecord",
    "EntitlementLog",
    "UsageAlertHistory",
    "ContentItem",
    "ContentKind",
    "ContentMedia",
    "ContentRevision",
    "ContentStatus",
    "ContentTaxonomy",
    "ContentType",
    "ContentWebhookLog",
    "RevisionChangeType",
    "SyncStatus",
    "TaxonomyType",
    "WebhookStatus",
    "content_item_taxonomies",
    "Prompt",
    "PromptVersion",
    "AdminAuditLog",
    "AuditAction",
    "AuditTargetType",
    "HoneypotHit",
    "BlockedIp",
    "BlockStatus",
    "HitSeverity",
    "UserSetting",
    "AIServiceCredential",
    "AccountDeletionRequest",
    "AnalyticsWebsite",
    "AnalyticsSession",
    "AnalyticsEvent",
]
