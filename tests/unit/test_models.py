"""Unit tests for model properties derived from stored columns."""

from datetime import timedelta

import pytest

from core.domain.entitlement import FeatureType
from infrastructure.database.models import AccountDeletionRequest, Feature, User, UserTier, utcnow


def user_with(tier: str, **overrides) -> User:
    return User(email="someone@example.com", password_hash="x", name="Someone", tier=tier, **overrides)


class TestUserTier:
    @pytest.mark.parametrize(
        "tier, hades, apollo, paid",
        [
            (UserTier.HADES.value, True, False, True),
            (UserTier.APOLLO.value, False, True, True),
            (UserTier.FREE.value, False, False, False),
        ],
    )
    def test_flags(self, tier, hades, apollo, paid):
        user = user_with(tier)
        assert (user.is_hades, user.is_apollo, user.is_paid) == (hades, apollo, paid)

    def test_expired_paid_tier_reads_as_free(self):
        user = user_with(UserTier.APOLLO.value, tier_expires_at=utcnow() - timedelta(minutes=1))

        assert user.effective_tier == UserTier.FREE
        assert not user.is_paid

    def test_unknown_tier_reads_as_free(self):
        assert user_with("zeus").effective_tier == UserTier.FREE


class TestAccountDeletionRequest:
    def test_pending_until_completed_or_cancelled(self):
        request = AccountDeletionRequest(token="t", expires_at=utcnow() + timedelta(days=7))
        assert request.is_pending
        assert not request.is_expired

        request.cancelled_at = utcnow()
        assert not request.is_pending

    def test_expired_with_naive_timestamp(self):
        request = AccountDeletionRequest(
            token="t", expires_at=(utcnow() - timedelta(days=1)).replace(tzinfo=None)
        )
        assert request.is_expired


def test_feature_type_flags():
    limit = Feature(code="ai.credits", name="AI Credits", category="ai", type=FeatureType.LIMIT.value)
    boolean = Feature(code="core.api", name="API", category="platform", type=FeatureType.BOOLEAN.value)

    assert limit.is_limit and not limit.is_boolean
    assert boolean.is_boolean and not boolean.is_limit
