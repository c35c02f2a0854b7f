"""Unit tests for entitlement results, billing cycles and static catalogues."""

from datetime import datetime, timezone

from core.domain.entitlement import EntitlementResult, current_cycle_start
from core.plans import SERVICES, default_model, get_tier, service_by_feature_code


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestEntitlementResult:
    def test_denied(self):
        result = EntitlementResult.denied("No access", feature_code="ai.credits")
        assert result.is_denied
        assert result.reason == "No access"
        assert result.remaining is None

    def test_unlimited_has_no_remaining(self):
        result = EntitlementResult.unlimited("core.api")
        assert result.allowed
        assert result.is_unlimited
        assert result.remaining is None
        assert result.usage_percentage is None
        assert not result.near_limit

    def test_remaining_and_percentage(self):
        result = EntitlementResult.allowed_result(limit=100, used=85)
        assert result.remaining == 15
        assert result.usage_percentage == 85
        assert result.near_limit

    def test_remaining_never_negative(self):
        result = EntitlementResult.allowed_result(limit=10, used=12)
        assert result.remaining == 0

    def test_zero_limit_percentage(self):
        assert EntitlementResult.allowed_result(limit=0, used=0).usage_percentage == 0.0


class TestCurrentCycleStart:
    def test_same_month(self):
        assert current_cycle_start(utc(2026, 1, 10), utc(2026, 3, 15)) == utc(2026, 3, 10)

    def test_before_anchor_day_uses_previous_month(self):
        assert current_cycle_start(utc(2026, 1, 20), utc(2026, 3, 15)) == utc(2026, 2, 20)

    def test_anchor_day_clamped_to_short_month(self):
        assert current_cycle_start(utc(2026, 1, 31), utc(2026, 4, 30, 12)) == utc(2026, 4, 30)

    def test_clamped_candidate_in_future_steps_back(self):
        assert current_cycle_start(utc(2026, 1, 31), utc(2026, 4, 15)) == utc(2026, 3, 31)

    def test_crosses_year_boundary(self):
        assert current_cycle_start(utc(2025, 6, 20), utc(2026, 1, 5)) == utc(2025, 12, 20)

    def test_future_anchor_returned(self):
        assert current_cycle_start(utc(2026, 5, 1), utc(2026, 4, 1)) == utc(2026, 5, 1)

    def test_naive_anchor_treated_as_utc(self):
        assert current_cycle_start(datetime(2026, 1, 10), utc(2026, 3, 15)) == utc(2026, 3, 10)


class TestPlans:
    def test_unknown_tier_is_free(self):
        assert get_tier("platinum") == get_tier("free")

    def test_hades_unlimited_workspaces(self):
        assert get_tier("hades")["max_workspaces"] == -1

    def test_default_model(self):
        assert default_model("claude") == "claude-sonnet-4-20250514"
        assert default_model("openai") is None
        assert default_model("mistral") is None

    def test_service_by_feature_code(self):
        slug, service = service_by_feature_code("core.srv.analytics")
        assert slug == "analytics"
        assert service is SERVICES["analytics"]
        assert service_by_feature_code("core.srv.missing") is None
