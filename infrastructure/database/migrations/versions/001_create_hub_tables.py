"""Create hub tables

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False)


def _fk(name: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # Users and workspaces
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="active"),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tier", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("tier_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cached_stats", sa.JSON(), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_workspace_id", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_email_status", "users", ["email", "status"])
    op.create_index("ix_users_tier", "users", ["tier", "tier_expires_at"])

    op.create_table(
        "workspaces",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=True),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=30), nullable=False, server_default="custom"),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wp_connector_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("wp_connector_url", sa.String(length=500), nullable=True),
        sa.Column("wp_connector_secret", sa.Text(), nullable=True),
        sa.Column("wp_connector_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("wp_connector_last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("wp_connector_config", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspaces_slug", "workspaces", ["slug"], unique=True)
    op.create_index("ix_workspaces_active_sort", "workspaces", ["is_active", "sort_order"])

    op.create_foreign_key(
        "fk_users_current_workspace",
        "users",
        "workspaces",
        ["current_workspace_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "user_workspace",
        _id(),
        _fk("user_id", "users.id", "CASCADE"),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "workspace_id", name="uq_user_workspace"),
    )
    op.create_index("ix_user_workspace_user_id", "user_workspace", ["user_id"])
    op.create_index("ix_user_workspace_workspace_id", "user_workspace", ["workspace_id"])

    # Entitlements
    op.create_table(
        "entitlement_features",
        _id(),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="boolean"),
        sa.Column("reset_type", sa.String(length=20), nullable=False, server_default="none"),
        sa.Column("rolling_window_days", sa.Integer(), nullable=True),
        _fk("parent_feature_id", "entitlement_features.id", "SET NULL", nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_entitlement_features_code", "entitlement_features", ["code"], unique=True)
    op.create_index("ix_features_category_sort", "entitlement_features", ["category", "sort_order"])

    op.create_table(
        "entitlement_packages",
        _id(),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("color", sa.String(length=20), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_stackable", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_base_package", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("yearly_price", sa.Numeric(10, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_entitlement_packages_code", "entitlement_packages", ["code"], unique=True)

    op.create_table(
        "entitlement_package_features",
        _id(),
        _fk("package_id", "entitlement_packages.id", "CASCADE"),
        _fk("feature_id", "entitlement_features.id", "CASCADE"),
        sa.Column("limit_value", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("package_id", "feature_id", name="uq_package_feature"),
    )
    op.create_index(
        "ix_entitlement_package_features_package_id", "entitlement_package_features", ["package_id"]
    )
    op.create_index(
        "ix_entitlement_package_features_feature_id", "entitlement_package_features", ["feature_id"]
    )

    op.create_table(
        "entitlement_workspace_packages",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        _fk("package_id", "entitlement_packages.id", "CASCADE"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("billing_cycle_anchor", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_entitlement_workspace_packages_workspace_id",
        "entitlement_workspace_packages",
        ["workspace_id"],
    )
    op.create_index(
        "ix_workspace_packages_ws_status",
        "entitlement_workspace_packages",
        ["workspace_id", "status"],
    )

    op.create_table(
        "entitlement_boosts",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("feature_code", sa.String(length=100), nullable=False),
        sa.Column("boost_type", sa.String(length=20), nullable=False, server_default="add_limit"),
        sa.Column("duration_type", sa.String(length=20), nullable=False, server_default="cycle_bound"),
        sa.Column("limit_value", sa.Integer(), nullable=True),
        sa.Column("consumed_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_entitlement_boosts_workspace_id", "entitlement_boosts", ["workspace_id"])
    op.create_index("ix_entitlement_boosts_feature_code", "entitlement_boosts", ["feature_code"])
    op.create_index(
        "ix_boosts_ws_feature_status",
        "entitlement_boosts",
        ["workspace_id", "feature_code", "status"],
    )

    op.create_table(
        "entitlement_usage_records",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("feature_code", sa.String(length=100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        _fk("user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_usage_ws_feature_recorded",
        "entitlement_usage_records",
        ["workspace_id", "feature_code", "recorded_at"],
    )

    op.create_table(
        "entitlement_logs",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        _fk("user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=True),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("source", sa.String(length=20), nullable=False, server_default="system"),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_entitlement_logs_workspace_id", "entitlement_logs", ["workspace_id"])
    op.create_index("ix_entitlement_logs_action", "entitlement_logs", ["action"])

    op.create_table(
        "entitlement_usage_alert_history",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("feature_code", sa.String(length=100), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_usage_alerts_ws_feature",
        "entitlement_usage_alert_history",
        ["workspace_id", "feature_code", "resolved_at"],
    )

    # Content
    op.create_table(
        "content_taxonomies",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "type", "slug", name="uq_taxonomy_ws_type_slug"),
    )
    op.create_index("ix_content_taxonomies_workspace_id", "content_taxonomies", ["workspace_id"])

    op.create_table(
        "content_media",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="image"),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("source_url", sa.String(length=1000), nullable=False),
        sa.Column("alt_text", sa.String(length=500), nullable=True),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_media_workspace_id", "content_media", ["workspace_id"])

    op.create_table(
        "content_items",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        _fk("author_id", "users.id", "SET NULL", nullable=True),
        _fk("last_edited_by", "users.id", "SET NULL", nullable=True),
        sa.Column("content_type", sa.String(length=20), nullable=False, server_default="native"),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="post"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("content_html", sa.Text(), nullable=True),
        sa.Column("content_markdown", sa.Text(), nullable=True),
        sa.Column("seo_meta", sa.JSON(), nullable=True),
        _fk("featured_media_id", "content_media.id", "SET NULL", nullable=True),
        sa.Column("publish_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sync_status", sa.String(length=20), nullable=False, server_default="synced"),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revision_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_items_ws_status", "content_items", ["workspace_id", "status"])
    op.create_index("ix_content_items_ws_type", "content_items", ["workspace_id", "type"])
    op.create_index("ix_content_items_ws_slug", "content_items", ["workspace_id", "slug"])

    op.create_table(
        "content_item_taxonomy",
        sa.Column(
            "content_item_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("content_items.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "taxonomy_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("content_taxonomies.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "content_revisions",
        _id(),
        _fk("content_item_id", "content_items.id", "CASCADE"),
        _fk("user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("revision_number", sa.Integer(), nullable=False),
        sa.Column("change_type", sa.String(length=20), nullable=False, server_default="edit"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("content_html", sa.Text(), nullable=True),
        sa.Column("seo_meta", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_revisions_content_item_id", "content_revisions", ["content_item_id"])

    op.create_table(
        "content_webhook_logs",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_webhook_logs_workspace_id", "content_webhook_logs", ["workspace_id"])
    op.create_index("ix_content_webhook_logs_status", "content_webhook_logs", ["status"])

    # Prompts
    op.create_table(
        "prompts",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False, server_default="content"),
        sa.Column("model", sa.String(length=20), nullable=False, server_default="claude"),
        sa.Column("system_prompt", sa.Text(), nullable=False),
        sa.Column("user_template", sa.Text(), nullable=False),
        sa.Column("variables", sa.JSON(), nullable=True),
        sa.Column("model_config", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prompts_category_name", "prompts", ["category", "name"])

    op.create_table(
        "prompt_versions",
        _id(),
        _fk("prompt_id", "prompts.id", "CASCADE"),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("system_prompt", sa.Text(), nullable=False),
        sa.Column("user_template", sa.Text(), nullable=False),
        sa.Column("variables", sa.JSON(), nullable=True),
        _fk("created_by", "users.id", "SET NULL", nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prompt_id", "version", name="uq_prompt_version"),
    )
    op.create_index("ix_prompt_versions_prompt_id", "prompt_versions", ["prompt_id"])

    # Account
    op.create_table(
        "user_settings",
        _id(),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "name", name="uq_user_setting"),
    )
    op.create_index("ix_user_settings_user_id", "user_settings", ["user_id"])

    op.create_table(
        "ai_service_credentials",
        _id(),
        _fk("user_id", "users.id", "CASCADE"),
        sa.Column("provider", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("encrypted_secret", sa.Text(), nullable=True),
        sa.Column("model", sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "provider", name="uq_ai_credential_provider"),
    )
    op.create_index("ix_ai_service_credentials_user_id", "ai_service_credentials", ["user_id"])

    op.create_table(
        "account_deletion_requests",
        _id(),
        _fk("user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
    )
    op.create_index(
        "ix_account_deletion_requests_user_id", "account_deletion_requests", ["user_id"]
    )

    op.create_table(
        "admin_audit_logs",
        _id(),
        _fk("admin_user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        _fk("target_user_id", "users.id", "SET NULL", nullable=True),
        sa.Column("target_type", sa.String(length=50), nullable=False),
        sa.Column("target_id", sa.String(length=64), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_audit_logs_admin_user_id", "admin_audit_logs", ["admin_user_id"])
    op.create_index("ix_admin_audit_logs_action", "admin_audit_logs", ["action"])
    op.create_index("ix_admin_audit_logs_target_type", "admin_audit_logs", ["target_type"])
    op.create_index("ix_admin_audit_logs_created_at", "admin_audit_logs", ["created_at"])
    op.create_index("ix_admin_audit_logs_target", "admin_audit_logs", ["target_type", "target_id"])

    # Honeypot / bouncer
    op.create_table(
        "honeypot_hits",
        _id(),
        sa.Column("ip_address", sa.String(length=45), nullable=False),
        sa.Column("path", sa.String(length=500), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("bot_name", sa.String(length=100), nullable=True),
        sa.Column("is_bot", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("severity", sa.String(length=20), nullable=False, server_default="warning"),
        sa.Column("country", sa.String(length=2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_honeypot_hits_ip_address", "honeypot_hits", ["ip_address"])
    op.create_index("ix_honeypot_hits_created_at", "honeypot_hits", ["created_at"])
    op.create_index(
        "ix_honeypot_hits_severity_created", "honeypot_hits", ["severity", "created_at"]
    )

    op.create_table(
        "blocked_ips",
        _id(),
        sa.Column("ip_address", sa.String(length=45), nullable=False),
        sa.Column("reason", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="approved"),
        sa.Column("blocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("ip_address"),
    )

    # Web analytics
    op.create_table(
        "analytics_websites",
        _id(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("host", sa.String(length=255), nullable=False),
        sa.Column("tracking_type", sa.String(length=20), nullable=False, server_default="lightweight"),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("public_stats_enabled", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("excluded_ips", sa.Text(), nullable=True),
        sa.Column("pixel_key", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_analytics_websites_workspace_id", "analytics_websites", ["workspace_id"])

    op.create_table(
        "analytics_sessions",
        _id(),
        _fk("website_id", "analytics_websites.id", "CASCADE"),
        sa.Column("visitor_id", sa.String(length=64), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("pageviews", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_bounce", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("landing_page", sa.String(length=1000), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_analytics_sessions_site_started", "analytics_sessions", ["website_id", "started_at"]
    )

    op.create_table(
        "analytics_events",
        _id(),
        _fk("website_id", "analytics_websites.id", "CASCADE"),
        _fk("session_id", "analytics_sessions.id", "CASCADE", nullable=True),
        sa.Column("visitor_id", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="pageview"),
        sa.Column("path", sa.String(length=1000), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_analytics_events_site_type_created",
        "analytics_events",
        ["website_id", "type", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("analytics_events")
    op.drop_table("analytics_sessions")
    op.drop_table("analytics_websites")
    op.drop_table("blocked_ips")
    op.drop_table("honeypot_hits")
    op.drop_table("admin_audit_logs")
    op.drop_table("account_deletion_requests")
    op.drop_table("ai_service_credentials")
    op.drop_table("user_settings")
    op.drop_table("prompt_versions")
    op.drop_table("prompts")
    op.drop_table("content_webhook_logs")
    op.drop_table("content_revisions")
    op.drop_table("content_item_taxonomy")
    op.drop_table("content_items")
    op.drop_table("content_media")
    op.drop_table("content_taxonomies")
    op.drop_table("entitlement_usage_alert_history")
    op.drop_table("entitlement_logs")
    op.drop_table("entitlement_usage_records")
    op.drop_table("entitlement_boosts")
    op.drop_table("entitlement_workspace_packages")
    op.drop_table("entitlement_package_features")
    op.drop_table("entitlement_packages")
    op.drop_table("entitlement_features")
    op.drop_table("user_workspace")
    op.drop_constraint("fk_users_current_workspace", "users", type_="foreignkey")
    op.drop_table("workspaces")
    op.drop_table("users")
