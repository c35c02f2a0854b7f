"""Unit tests for panel presentation helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from core.presentation import (
    boost_badge,
    deletion_status,
    describe_boost,
    empty_state,
    entitlement_badge,
    format_duration,
    health_color,
    kanban_color,
    mask_secret,
    package_badge,
    prompt_model_color,
    select_section,
    tier_color,
    toggle_sort,
    usage_bar_color,
    with_empty_state,
    workspace_status_color,
)


class TestUsageBarColor:
    @pytest.mark.parametrize(
        "percentage,expected",
        [(None, "green"), (0, "green"), (74.9, "green"), (75, "amber"), (89, "amber"), (90, "red"), (250, "red")],
    )
    def test_thresholds(self, percentage, expected):
        assert usage_bar_color(percentage) == expected


class TestBadges:
    def test_entitlement_not_included(self):
        assert entitlement_badge(False) == {"color": "zinc", "label": "Not included"}

    def test_entitlement_unlimited(self):
        assert entitlement_badge(True, unlimited=True)["label"] == "Unlimited"

    def test_entitlement_boolean(self):
        assert entitlement_badge(True, feature_type="boolean")["label"] == "Enabled"

    def test_entitlement_limit_shows_usage(self):
        assert entitlement_badge(True, used=3, limit=10) == {"color": "blue", "label": "3 / 10"}

    def test_package_badge(self):
        assert package_badge(True, False)["label"] == "Base"
        assert package_badge(False, True)["label"] == "Addon"
        assert package_badge(False, False)["label"] == "Standard"

    def test_boost_badge(self):
        assert boost_badge("add_limit", 50)["label"] == "+50"
        assert boost_badge("unlimited")["label"] == "Unlimited"
        assert boost_badge("enable")["label"] == "Enabled"


class TestDescribeBoost:
    def test_add_limit_cycle_bound(self):
        assert describe_boost("add_limit", "cycle_bound", 50) == "+50 additional until billing cycle ends"

    def test_unlimited_permanent(self):
        assert describe_boost("unlimited", "permanent") == "Unlimited access permanently"

    def test_unknown_duration(self):
        assert describe_boost("enable", "weekly") == "Feature enabled"


class TestSections:
    def test_known_section_kept(self):
        assert select_section("boosts", ["overview", "boosts"], "overview") == "boosts"

    def test_unknown_section_defaults(self):
        assert select_section("billing", ["overview", "boosts"], "overview") == "overview"

    def test_none_defaults(self):
        assert select_section(None, ["overview", "boosts"], "overview") == "overview"

    def test_bad_default_falls_back_to_first(self):
        assert select_section(None, ["overview", "boosts"], "missing") == "overview"


class TestEmptyState:
    def test_known_key(self):
        assert empty_state("honeypot_hits") == "No honeypot hits recorded"

    def test_unknown_key(self):
        assert empty_state("widgets") == "Nothing here yet"

    def test_added_only_when_empty(self):
        assert with_empty_state({}, "packages", [])["empty_state"] == "No active packages"
        assert "empty_state" not in with_empty_state({}, "packages", [1])


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(None, "0s"), (45, "45s"), (120, "2m"), (150, "2m 30s"), (3600, "1h"), (3900, "1h 5m")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestMaskSecret:
    def test_none(self):
        assert mask_secret(None) is None

    def test_short_secret_fully_masked(self):
        assert mask_secret("abc") == "***"

    def test_keeps_last_four(self):
        assert mask_secret("sk-ant-123456") == "*********3456"


class TestToggleSort:
    def test_same_column_flips(self):
        assert toggle_sort("created_at", "desc", "created_at") == ("created_at", "asc")
        assert toggle_sort("created_at", "asc", "created_at") == ("created_at", "desc")

    def test_new_column_descends(self):
        assert toggle_sort("created_at", "asc", "ip_address") == ("ip_address", "desc")


class TestDeletionStatus:
    def test_completed_wins(self):
        now = datetime.now(timezone.utc)
        assert deletion_status(now, now, now) == "completed"

    def test_cancelled(self):
        now = datetime.now(timezone.utc)
        assert deletion_status(now, None, now) == "cancelled"

    def test_expired_pending(self):
        now = datetime.now(timezone.utc)
        assert deletion_status(now - timedelta(hours=1), None, None, now=now) == "expired_pending"

    def test_pending_with_naive_expiry(self):
        now = datetime.now(timezone.utc)
        future = (now + timedelta(days=3)).replace(tzinfo=None)
        assert deletion_status(future, None, None, now=now) == "pending"


def test_health_color():
    assert health_color("healthy") == "green"
    assert health_color("degraded") == "amber"
    assert health_color("unknown") == "zinc"
    assert health_color("unhealthy") == "red"


def test_status_colors():
    assert workspace_status_color("active") == "green"
    assert workspace_status_color("inactive") == "zinc"
    assert tier_color("hades") == "violet"
    assert tier_color("free") == "zinc"
    assert prompt_model_color("gemini") == "blue"
    assert prompt_model_color("gpt") == "gray"


@pytest.mark.parametrize(
    "status, expected",
    [("draft", "gray"), ("pending", "yellow"), ("future", "blue"), ("publish", "green"), ("trash", "gray")],
)
def test_kanban_color(status, expected):
    assert kanban_color(status) == expected
