"""
Platform administration request schemas.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Single user
# ============================================================================


class TierUpdateRequest(BaseModel):
    tier: Literal["free", "apollo", "hades"]


class VerificationUpdateRequest(BaseModel):
    verified: bool


class ScheduleDeletionRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)
    immediate: bool = False


class ProvisionPackageRequest(BaseModel):
    workspace_id: Optional[str] = None
    package_code: Optional[str] = None


class RevokePackageRequest(BaseModel):
    workspace_id: str
    package_code: str


class ProvisionEntitlementRequest(BaseModel):
    workspace_id: Optional[str] = None
    feature_code: Optional[str] = None
    type: Literal["enable", "add_limit", "unlimited"] = "enable"
    limit_value: Optional[int] = Field(None, ge=1)
    duration: Literal["permanent", "duration"] = "permanent"
    expires_at: Optional[datetime] = None


# ============================================================================
# Entitlement catalogue
# ============================================================================


class PackageRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=20)
    sort_order: int = 0
    is_stackable: bool = True
    is_base_package: bool = False
    is_active: bool = True
    is_public: bool = True
    monthly_price: Optional[float] = Field(None, ge=0)
    yearly_price: Optional[float] = Field(None, ge=0)


class PackageFeatureAssignment(BaseModel):
    feature_id: str
    limit_value: Optional[int] = None


class PackageFeaturesRequest(BaseModel):
    features: list[PackageFeatureAssignment] = Field(default_factory=list)


class FeatureRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    type: Literal["boolean", "limit", "unlimited"] = "boolean"
    reset_type: Literal["none", "monthly", "rolling"] = "none"
    rolling_window_days: Optional[int] = Field(None, ge=1)
    parent_feature_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
