import logging
import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from ..audit import AuditLog
from ..config import LoyaltyConfig
from ..models import Charge, DogOwner, LoyaltyAccount, LoyaltyReward, LoyaltyRewardType

logger = logging.getLogger(__name__)

POINT_TIERS = ((100, "Bronze"), (250, "Silver"), (500, "Gold"))
SPEND_TIERS = ((500, "Bronze"), (2000, "Silver"), (5000, "Gold"))
TOP_TIER = "Platinum"


def _tier_for(value: float, bounds) -> str:
    for upper, name in bounds:
        if value < upper:
            return name
    return TOP_TIER


class LoyaltyRewardEngine:
    """
    Points, tiers and reward redemption for the loyalty program.

    Accounts are immutable; every operation that changes one returns an
    updated copy and leaves the input untouched.
    """

    def __init__(self, config: Optional[LoyaltyConfig] = None, audit_log: Optional[AuditLog] = None):
        self.config = config or LoyaltyConfig()
        self.audit_log = audit_log

    @staticmethod
    def tier(points: int) -> str:
        """Tier from loyalty points: Bronze, Silver, Gold or Platinum."""
        return _tier_for(points, POINT_TIERS)

    @staticmethod
    def spend_tier(total_spent: float) -> str:
        """Tier from lifetime spend."""
        return _tier_for(total_spent, SPEND_TIERS)

    def build_account(self, owner: DogOwner, charges: Sequence[Charge]) -> LoyaltyAccount:
        """
        Build an owner's loyalty account from their history.

        Args:
            owner: Owner to build the account for
            charges: Charges of all owners; only the owner's own are used

        Returns:
            LoyaltyAccount with points earned from spend and completed visits counted
        """
        total_spent = sum(c.amount for c in charges if c.owner_id == owner.id)
        points = max(int(math.floor(total_spent * self.config.points_per_currency_unit)), 0)
        return LoyaltyAccount(
            owner_id=owner.id,
            points=points,
            visit_count=len(owner.completed_appointments),
            total_spent=float(total_spent)
        )

    def add_points(self,
                   account: LoyaltyAccount,
                   points: int,
                   for_visit: bool = False,
                   now: Optional[datetime] = None) -> LoyaltyAccount:
        """Return a copy of ``account`` with ``points`` added (and one more visit if ``for_visit``)."""
        if points < 0:
            raise ValueError("points to add must be >= 0")
        updated = account.model_copy(update={
            'points': account.points + points,
            'visit_count': account.visit_count + (1 if for_visit else 0)
        })
        if self.audit_log is not None:
            self.audit_log.record('loyalty_points_added',
                                  {'owner_id': account.owner_id, 'points': points}, timestamp=now)
        return updated

    def is_eligible(self, account: LoyaltyAccount) -> bool:
        return account.points >= self.config.points_per_reward

    def reward_progress(self, account: LoyaltyAccount) -> float:
        """Progress towards the next reward, in [0, 1)."""
        per_reward = self.config.points_per_reward
        return (account.points % per_reward) / per_reward

    def visits_until_reward(self, account: LoyaltyAccount) -> int:
        per_reward = self.config.visits_per_reward
        return per_reward - (account.visit_count % per_reward)

    def redeem_reward(self,
                      account: LoyaltyAccount,
                      reward_type: LoyaltyRewardType,
                      now: Optional[datetime] = None,
                      notes: Optional[str] = None) -> Tuple[LoyaltyAccount, Optional[LoyaltyReward]]:
        """
        Redeem one reward.

        Args:
            account: Account to redeem from
            reward_type: Type of reward
            now: Redemption time, defaults to the current time
            notes: Optional reward notes

        Returns:
            ``(updated_account, reward)``, or ``(account, None)`` when the
            account does not hold enough points
        """
        now = now or datetime.now()
        if not self.is_eligible(account):
            logger.debug(f"Owner {account.owner_id} not eligible for a reward ({account.points} points)")
            return account, None

        reward = LoyaltyReward(
            reward_type=reward_type,
            date=now,
            expiry_date=now + timedelta(days=self.config.reward_expiry_days),
            notes=notes
        )
        updated = account.model_copy(update={
            'points': account.points - self.config.points_per_reward,
            'rewards_redeemed': list(account.rewards_redeemed) + [reward],
            'last_reward_date': now
        })

        logger.info(f"Owner {account.owner_id} redeemed {reward_type.display_name}")
        if self.audit_log is not None:
            self.audit_log.record('loyalty_reward_redeemed',
                                  {'owner_id': account.owner_id, 'reward': reward_type.value}, timestamp=now)
        return updated, reward

    def expiring_rewards(self,
                         account: LoyaltyAccount,
                         within_days: int = 30,
                         now: Optional[datetime] = None) -> List[LoyaltyReward]:
        """Rewards that have not expired yet but will within ``within_days``."""
        now = now or datetime.now()
        horizon = now + timedelta(days=within_days)
        return [
            reward for reward in account.rewards_redeemed
            if reward.expiry_date is not None and now < reward.expiry_date <= horizon
        ]

    def summary(self, account: LoyaltyAccount) -> str:
        progress = round(self.reward_progress(account) * 100)
        return f"Tier: {self.tier(account.points)} | Points: {account.points} ({progress}% to reward)"
