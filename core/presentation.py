"""
Pure presentation helpers shared by the hub panels.

Every panel returns plain display state; these functions decide the badge
colours, labels, section selection and empty-state text that state carries.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from core.domain.entitlement import BoostDuration, BoostType, FeatureType


EMPTY_STATES = {
    "packages": "No active packages",
    "workspaces": "No workspaces yet",
    "boosts": "No active boosts",
    "usage": "No usage data available",
    "honeypot_hits": "No honeypot hits recorded",
    "top_ips": "No data yet",
    "top_bots": "No bots detected yet",
    "revisions": "No revisions yet",
    "prompts": "No prompts found",
    "content": "No content found",
    "webhooks": "No webhook events yet",
    "commits": "No commits found",
    "entitlements": "No entitlements",
    "activity": "No recent activity",
    "websites": "No websites yet",
    "search": "No results found",
}

KANBAN_COLUMNS = {
    "draft": "gray",
    "pending": "yellow",
    "future": "blue",
    "publish": "green",
}


def usage_bar_color(percentage: Optional[float]) -> str:
    """Colour for a usage bar: >=90 red, >=75 amber, else green."""
    value = min(percentage or 0, 100)
    if value >= 90:
        return "red"
    if value >= 75:
        return "amber"
    return "green"


def entitlement_badge(
    allowed: bool,
    unlimited: bool = False,
    feature_type: str = FeatureType.LIMIT.value,
    used: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    if not allowed:
        return {"color": "zinc", "label": "Not included"}
    if unlimited:
        return {"color": "purple", "label": "Unlimited"}
    if feature_type == FeatureType.BOOLEAN.value or limit is None:
        return {"color": "green", "label": "Enabled"}
    return {"color": "blue", "label": f"{used or 0} / {limit}"}


def package_badge(is_base_package: bool, is_stackable: bool) -> dict:
    if is_base_package:
        return {"color": "purple", "label": "Base"}
    if is_stackable:
        return {"color": "blue", "label": "Addon"}
    return {"color": "gray", "label": "Standard"}


def status_badge(status: str) -> dict:
    return {"color": "green" if status == "active" else "zinc", "label": status.capitalize()}


def boost_badge(boost_type: str, limit_value: Optional[int] = None) -> dict:
    if boost_type == BoostType.ADD_LIMIT.value:
        return {"color": "blue", "label": f"+{limit_value or 0}"}
    if boost_type == BoostType.UNLIMITED.value:
        return {"color": "purple", "label": "Unlimited"}
    return {"color": "green", "label": "Enabled"}


def describe_boost(boost_type: str, duration_type: str, limit_value: Optional[int] = None) -> str:
    """Human description of a boost, e.g. "+50 additional until billing cycle ends"."""
    if boost_type == BoostType.ADD_LIMIT.value:
        type_part = f"+{limit_value or 0} additional"
    elif boost_type == BoostType.UNLIMITED.value:
        type_part = "Unlimited access"
    elif boost_type == BoostType.ENABLE.value:
        type_part = "Feature enabled"
    else:
        type_part = "Boost"

    duration_part = {
        BoostDuration.CYCLE_BOUND.value: "until billing cycle ends",
        BoostDuration.DURATION.value: "for limited time",
        BoostDuration.PERMANENT.value: "permanently",
    }.get(duration_type, "")

    return f"{type_part} {duration_part}".strip()


def prompt_model_color(model: str) -> str:
    return {"claude": "orange", "gemini": "blue"}.get(model, "gray")


def prompt_badges(model: str, is_active: bool, category: str) -> dict:
    return {
        "model": {"color": prompt_model_color(model), "label": model.capitalize()},
        "status": {
            "color": "green" if is_active else "gray",
            "label": "Active" if is_active else "Inactive",
        },
        "category": {"color": "violet", "label": category.capitalize()},
    }


def health_color(status: str) -> str:
    if status == "healthy":
        return "green"
    if status in ("degraded", "warning"):
        return "amber"
    if status == "unknown":
        return "zinc"
    return "red"


def workspace_status_color(status: str) -> str:
    return "green" if status == "active" else "zinc"


def tier_color(tier: str) -> str:
    return {"hades": "violet", "apollo": "blue"}.get(tier, "zinc")


def deletion_status(
    expires_at: datetime,
    completed_at: Optional[datetime],
    cancelled_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> str:
    if completed_at is not None:
        return "completed"
    if cancelled_at is not None:
        return "cancelled"
    now = now or datetime.now(timezone.utc)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at <= now:
        return "expired_pending"
    return "pending"


def kanban_color(status: str) -> str:
    return KANBAN_COLUMNS.get(status, "gray")


def select_section(value: Optional[str], allowed: Iterable[str], default: str) -> str:
    """Return value if it names an allowed section, otherwise default."""
    allowed = list(allowed)
    if value in allowed:
        return value
    return default if default in allowed else allowed[0]


def empty_state(collection_key: str) -> str:
    return EMPTY_STATES.get(collection_key, "Nothing here yet")


def with_empty_state(payload: dict, collection_key: str, items) -> dict:
    """Add an ``empty_state`` entry to payload when items is empty."""
    if not items:
        payload["empty_state"] = empty_state(collection_key)
    return payload


def format_duration(seconds: Optional[float]) -> str:
    """Format seconds as "45s", "2m 30s", "2m", "1h 5m" or "1h"."""
    seconds = int(seconds or 0)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        minutes, secs = divmod(seconds, 60)
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


def mask_secret(secret: Optional[str], visible: int = 4) -> Optional[str]:
    """Mask all but the last few characters of a secret."""
    if not secret:
        return None
    if len(secret) <= visible:
        return "*" * len(secret)
    return "*" * (len(secret) - visible) + secret[-visible:]


def toggle_sort(current_field: str, current_direction: str, field: str) -> tuple[str, str]:
    """Clicking the active column flips direction; a new column starts descending."""
    if field == current_field:
        return field, "desc" if current_direction == "asc" else "asc"
    return field, "desc"
