from datetime import timedelta

import pytest

from furfolio_analytics.analytics import LoyaltyRewardEngine
from furfolio_analytics.audit import AuditLog
from furfolio_analytics.models import LoyaltyAccount, LoyaltyRewardType


@pytest.fixture
def engine():
    return LoyaltyRewardEngine()


class TestTiers:
    @pytest.mark.parametrize("points,tier", [
        (0, "Bronze"), (99, "Bronze"), (100, "Silver"), (249, "Silver"),
        (250, "Gold"), (499, "Gold"), (500, "Platinum"), (10000, "Platinum"),
    ])
    def test_point_tiers(self, engine, points, tier):
        assert engine.tier(points) == tier

    @pytest.mark.parametrize("spent,tier", [
        (0, "Bronze"), (499.99, "Bronze"), (500, "Silver"), (1999, "Silver"),
        (2000, "Gold"), (5000, "Platinum"),
    ])
    def test_spend_tiers(self, engine, spent, tier):
        assert engine.spend_tier(spent) == tier


class TestAccounts:
    def test_build_account(self, engine, make_owner, make_charge):
        owner = make_owner([30, 20, 10])
        charges = [make_charge(80.5), make_charge(40.0), make_charge(999.0, owner_id="other")]
        account = engine.build_account(owner, charges)
        assert account.owner_id == owner.id
        assert account.points == 120
        assert account.visit_count == 3
        assert account.total_spent == pytest.approx(120.5)

    def test_add_points_returns_copy(self, engine):
        account = LoyaltyAccount(owner_id="o1", points=10)
        updated = engine.add_points(account, 25, for_visit=True)
        assert updated.points == 35
        assert updated.visit_count == 1
        assert account.points == 10
        assert account.visit_count == 0

    def test_add_negative_points(self, engine):
        with pytest.raises(ValueError):
            engine.add_points(LoyaltyAccount(owner_id="o1"), -5)

    def test_reward_progress(self, engine):
        assert engine.reward_progress(LoyaltyAccount(owner_id="o1", points=75)) == pytest.approx(0.5)
        assert engine.reward_progress(LoyaltyAccount(owner_id="o1", points=100)) == 0.0

    def test_eligibility(self, engine):
        assert not engine.is_eligible(LoyaltyAccount(owner_id="o1", points=49))
        assert engine.is_eligible(LoyaltyAccount(owner_id="o1", points=50))

    def test_visits_until_reward(self, engine):
        assert engine.visits_until_reward(LoyaltyAccount(owner_id="o1", visit_count=3)) == 2

    def test_summary(self, engine):
        summary = engine.summary(LoyaltyAccount(owner_id="o1", points=125))
        assert summary == "Tier: Silver | Points: 125 (50% to reward)"


class TestRedemption:
    def test_redeem_deducts_points_and_stamps_expiry(self, engine, now):
        account = LoyaltyAccount(owner_id="o1", points=120)
        updated, reward = engine.redeem_reward(account, LoyaltyRewardType.FREE_BATH, now)

        assert reward is not None
        assert updated.points == 70
        assert updated.rewards_redeemed == [reward]
        assert updated.last_reward_date == now
        assert reward.expiry_date == now + timedelta(days=180)
        assert account.points == 120
        assert account.rewards_redeemed == []

    def test_not_eligible(self, engine, now):
        account = LoyaltyAccount(owner_id="o1", points=10)
        updated, reward = engine.redeem_reward(account, LoyaltyRewardType.DISCOUNT, now)
        assert reward is None
        assert updated == account

    def test_redeem_recorded_in_audit_log(self, now):
        audit = AuditLog()
        engine = LoyaltyRewardEngine(audit_log=audit)
        engine.redeem_reward(LoyaltyAccount(owner_id="o1", points=60), LoyaltyRewardType.FREE_NAIL_TRIM, now)
        assert [event.name for event in audit] == ['loyalty_reward_redeemed']

    def test_expiring_rewards(self, engine, now):
        account = LoyaltyAccount(owner_id="o1", points=150)
        account, early = engine.redeem_reward(account, LoyaltyRewardType.FREE_BATH, now - timedelta(days=170))
        account, late = engine.redeem_reward(account, LoyaltyRewardType.DISCOUNT, now - timedelta(days=10))
        account, expired = engine.redeem_reward(account, LoyaltyRewardType.CUSTOM, now - timedelta(days=200))

        assert engine.expiring_rewards(account, within_days=30, now=now) == [early]
        assert engine.expiring_rewards(account, within_days=180, now=now) == [early, late]

    def test_reward_type_names(self):
        assert LoyaltyRewardType.FREE_NAIL_TRIM.display_name == "Free Nail Trim"
        assert LoyaltyRewardType.CUSTOM.display_name == "Custom Reward"
