"""
Hub panel request and response schemas.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Shared
# ============================================================================


class ActionResponse(BaseModel):
    """Outcome of a panel action; level mirrors the toast colour."""

    success: bool = True
    message: str
    level: Literal["success", "warning", "danger", "error"] = "success"

    model_config = ConfigDict(extra="allow")


# ============================================================================
# Account / AI services
# ============================================================================


class AIServiceSettingsRequest(BaseModel):
    """api_key of None keeps the stored key."""

    api_key: Optional[str] = None
    model: Optional[str] = None
    active: bool = False


# ============================================================================
# Workspaces / search
# ============================================================================


class WorkspaceSwitchRequest(BaseModel):
    slug: str = Field(..., min_length=1, max_length=255)


class RecentSearchRequest(BaseModel):
    type: str = "pages"
    title: str = Field(..., min_length=1, max_length=255)
    subtitle: Optional[str] = None
    url: str = Field(..., min_length=1, max_length=1000)
    icon: Optional[str] = None


# ============================================================================
# Databases (WP connector)
# ============================================================================


class ConnectorSettingsRequest(BaseModel):
    enabled: bool = False
    url: Optional[str] = Field(None, max_length=500)


# ============================================================================
# Content
# ============================================================================


class ContentSaveRequest(BaseModel):
    """Editor form; validated field by field by the route."""

    title: str = ""
    slug: str = ""
    content: str = ""
    excerpt: Optional[str] = None
    type: str = "post"
    status: str = "draft"
    content_type: str = "native"
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None
    og_image: Optional[str] = None
    category_ids: list[str] = Field(default_factory=list)
    tag_ids: list[str] = Field(default_factory=list)
    featured_media_id: Optional[str] = None
    publish_at: Optional[datetime] = None


class SlugRequest(BaseModel):
    title: str = ""


class TagRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class FeaturedMediaRequest(BaseModel):
    media_id: Optional[str] = None


class ExecutePromptRequest(BaseModel):
    prompt_id: str
    variables: dict[str, Any] = Field(default_factory=dict)
    content: str = ""
    title: str = ""
    excerpt: str = ""


class QuickActionRequest(BaseModel):
    prompt: str
    variables: dict[str, Any] = Field(default_factory=dict)
    content: str = ""


class AIResultRequest(BaseModel):
    content: str = ""
    result: str = ""
    mode: Literal["apply", "insert"] = "apply"


class PromptRequest(BaseModel):
    """Prompt form; validated field by field by the route."""

    name: str = ""
    description: Optional[str] = None
    category: str = "content"
    model: str = "claude"
    system_prompt: str = ""
    user_template: str = ""
    variables: Optional[dict[str, Any]] = None
    model_settings: Optional[dict[str, Any]] = None
    is_active: bool = True


# ============================================================================
# Settings / profile
# ============================================================================


class ProfileUpdateRequest(BaseModel):
    name: str = ""
    email: str = ""


class PreferencesRequest(BaseModel):
    locale: str = "en_GB"
    timezone: str = "Europe/London"
    time_format: int = 12
    week_starts_on: int = 1


class PasswordUpdateRequest(BaseModel):
    current_password: str = ""
    password: str = ""
    password_confirmation: str = ""


class DeletionRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


# ============================================================================
# Sites / services
# ============================================================================


class AddServiceRequest(BaseModel):
    feature_code: str = Field(..., min_length=1, max_length=100)


class AnalyticsSettingsRequest(BaseModel):
    name: str = Field("", max_length=255)
    host: str = Field("", max_length=255)
    tracking_type: Literal["lightweight", "full"] = "lightweight"
    is_enabled: bool = True
    public_stats_enabled: bool = False
    excluded_ips: str = ""


# ============================================================================
# Honeypot
# ============================================================================


class BlockIpRequest(BaseModel):
    ip: str = Field(..., min_length=3, max_length=45)
    reason: str = Field("manual", max_length=100)
