"""Entitlement domain entities."""
import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class FeatureType(str, Enum):
    """How a feature grants access."""
    BOOLEAN = "boolean"
    LIMIT = "limit"
    UNLIMITED = "unlimited"


class ResetType(str, Enum):
    """When metered usage resets."""
    NONE = "none"
    MONTHLY = "monthly"
    ROLLING = "rolling"


class BoostType(str, Enum):
    ADD_LIMIT = "add_limit"
    ENABLE = "enable"
    UNLIMITED = "unlimited"


class BoostDuration(str, Enum):
    CYCLE_BOUND = "cycle_bound"
    DURATION = "duration"
    PERMANENT = "permanent"


class BoostStatus(str, Enum):
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PackageStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class EntitlementSource(str, Enum):
    SYSTEM = "system"
    ADMIN = "admin"
    USER = "user"
    API = "api"


class EntitlementAction(str, Enum):
    """Actions recorded in the entitlement audit log."""
    PACKAGE_PROVISIONED = "package_provisioned"
    PACKAGE_CANCELLED = "package_cancelled"
    PACKAGE_SUSPENDED = "package_suspended"
    PACKAGE_REACTIVATED = "package_reactivated"
    BOOST_PROVISIONED = "boost_provisioned"
    BOOST_EXPIRED = "boost_expired"
    BOOST_CANCELLED = "boost_cancelled"


UNLIMITED = -1


@dataclass(frozen=True)
class EntitlementResult:
    """Outcome of an entitlement check.

    ``limit`` is None for boolean grants and -1 for unlimited grants.
    """

    allowed: bool
    reason: Optional[str] = None
    limit: Optional[int] = None
    used: Optional[int] = None
    feature_code: Optional[str] = None

    @classmethod
    def allowed_result(
        cls,
        limit: Optional[int] = None,
        used: Optional[int] = None,
        feature_code: Optional[str] = None,
    ) -> "EntitlementResult":
        return cls(allowed=True, limit=limit, used=used, feature_code=feature_code)

    @classmethod
    def denied(
        cls,
        reason: str,
        limit: Optional[int] = None,
        used: Optional[int] = None,
        feature_code: Optional[str] = None,
    ) -> "EntitlementResult":
        return cls(allowed=False, reason=reason, limit=limit, used=used, feature_code=feature_code)

    @classmethod
    def unlimited(cls, feature_code: Optional[str] = None) -> "EntitlementResult":
        return cls(allowed=True, limit=UNLIMITED, feature_code=feature_code)

    @property
    def is_denied(self) -> bool:
        return not self.allowed

    @property
    def is_unlimited(self) -> bool:
        return self.limit == UNLIMITED

    @property
    def remaining(self) -> Optional[int]:
        if self.limit is None or self.used is None or self.is_unlimited:
            return None
        return max(self.limit - self.used, 0)

    @property
    def usage_percentage(self) -> Optional[float]:
        if self.limit is None or self.used is None or self.is_unlimited:
            return None
        if self.limit == 0:
            return 0.0
        return self.used / self.limit * 100

    @property
    def near_limit(self) -> bool:
        percentage = self.usage_percentage
        return percentage is not None and percentage >= 80


def current_cycle_start(anchor: datetime, now: datetime) -> datetime:
    """Start of the monthly billing cycle containing ``now``.

    Cycles renew on the anchor's day of month, clamped to the month's length
    (an anchor on the 31st renews on the 30th in April).
    """
    if anchor.tzinfo is None:
        anchor = anchor.replace(tzinfo=timezone.utc)
    if anchor > now:
        return anchor

    year, month = now.year, now.month
    while True:
        day = min(anchor.day, calendar.monthrange(year, month)[1])
        candidate = anchor.replace(year=year, month=month, day=day)
        if candidate <= now:
            return candidate
        month -= 1
        if month == 0:
            year, month = year - 1, 12
