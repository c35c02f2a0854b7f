# Domain Entities
# Pure business objects with no external dependencies
from .entitlement import (
    BoostDuration,
    BoostStatus,
    BoostType,
    EntitlementAction,
    EntitlementResult,
    EntitlementSource,
    FeatureType,
    PackageStatus,
    ResetType,
    UNLIMITED,
    current_cycle_start,
)

__all__ = [
    "BoostDuration",
    "BoostStatus",
    "BoostType",
    "EntitlementAction",
    "EntitlementResult",
    "EntitlementSource",
    "FeatureType",
    "PackageStatus",
    "ResetType",
    "UNLIMITED",
    "current_cycle_start",
]
