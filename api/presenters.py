"""
Row builders shared by hub panels.

Turn ORM objects into the display dicts the panels return, attaching
badges and colours from core.presentation.
"""

from collections import OrderedDict
from typing import Optional

from core.presentation import (
    boost_badge,
    describe_boost,
    entitlement_badge,
    package_badge,
    status_badge,
    tier_color,
    usage_bar_color,
)
from infrastructure.database.models import Boost, Package, User, WorkspacePackage


def iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def package_row(workspace_package: WorkspacePackage) -> dict:
    package = workspace_package.package
    return {
        "id": workspace_package.id,
        "code": package.code,
        "name": package.name,
        "description": package.description,
        "icon": package.icon,
        "color": package.color,
        "status": workspace_package.status,
        "is_base_package": package.is_base_package,
        "starts_at": iso(workspace_package.starts_at),
        "expires_at": iso(workspace_package.expires_at),
        "billing_cycle_anchor": iso(workspace_package.billing_cycle_anchor),
        "badge": package_badge(package.is_base_package, package.is_stackable),
        "status_badge": status_badge(workspace_package.status),
    }


def boost_row(boost: Boost, feature_name: Optional[str] = None) -> dict:
    return {
        "id": boost.id,
        "feature_code": boost.feature_code,
        "feature_name": feature_name or boost.feature_code,
        "boost_type": boost.boost_type,
        "duration_type": boost.duration_type,
        "limit_value": boost.limit_value,
        "consumed_quantity": boost.consumed_quantity,
        "remaining": boost.remaining_limit,
        "status": boost.status,
        "expires_at": iso(boost.expires_at),
        "description": describe_boost(boost.boost_type, boost.duration_type, boost.limit_value),
        "badge": boost_badge(boost.boost_type, boost.limit_value),
    }


def usage_groups(summary: "OrderedDict[str, list[dict]]") -> list[dict]:
    """Grouped usage summary with bar colours and entitlement badges."""
    groups = []
    for category, features in summary.items():
        rows = []
        for feature in features:
            rows.append(
                {
                    **feature,
                    "bar_color": usage_bar_color(feature["percentage"]),
                    "badge": entitlement_badge(
                        feature["allowed"],
                        feature["unlimited"],
                        feature["type"],
                        feature["used"],
                        feature["limit"],
                    ),
                }
            )
        groups.append({"category": category, "features": rows})
    return groups


def catalogue_package_row(package: Package) -> dict:
    return {
        "id": package.id,
        "code": package.code,
        "name": package.name,
        "description": package.description,
        "icon": package.icon,
        "color": package.color,
        "sort_order": package.sort_order,
        "is_stackable": package.is_stackable,
        "is_base_package": package.is_base_package,
        "is_active": package.is_active,
        "is_public": package.is_public,
        "monthly_price": float(package.monthly_price) if package.monthly_price is not None else None,
        "yearly_price": float(package.yearly_price) if package.yearly_price is not None else None,
        "badge": package_badge(package.is_base_package, package.is_stackable),
        "status_badge": status_badge("active" if package.is_active else "inactive"),
    }


def user_row(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "tier": user.tier,
        "tier_color": tier_color(user.tier),
        "status": user.status,
        "email_verified": user.email_verified,
        "email_verified_at": iso(user.email_verified_at),
        "last_login": iso(user.last_login),
        "created_at": iso(user.created_at),
    }
