import logging
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence

from ..config import RetentionThresholds
from ..models import DogOwner
from ..utils import days_between

logger = logging.getLogger(__name__)


class RetentionTag(str, Enum):
    """Retention bucket derived from visit history."""
    NEW = "new"
    ACTIVE = "active"
    AT_RISK = "at_risk"
    INACTIVE = "inactive"
    RETURNING = "returning"

    @property
    def label(self) -> str:
        return {
            RetentionTag.NEW: "New Client",
            RetentionTag.ACTIVE: "Active",
            RetentionTag.AT_RISK: "Retention Risk",
            RetentionTag.INACTIVE: "Inactive",
            RetentionTag.RETURNING: "Returning",
        }[self]


class CustomerRetentionAnalyzer:
    """Tags owners into retention buckets from day-count thresholds."""

    def __init__(self, thresholds: Optional[RetentionThresholds] = None):
        self.thresholds = thresholds or RetentionThresholds()

    def tag_for_days(self,
                     days_since_last: Optional[int],
                     days_since_first: Optional[int] = None,
                     previous_gap_days: Optional[int] = None) -> RetentionTag:
        """
        Retention tag for raw day counts.

        Rules are evaluated in order, the first one that applies wins:
        no history -> new, inactive, at risk, new, active, returning.

        Args:
            days_since_last: Days since the most recent visit, None without visits
            days_since_first: Days since the first visit
            previous_gap_days: Days between the two most recent visits, None with a single visit
        """
        t = self.thresholds
        if days_since_last is None:
            return RetentionTag.NEW
        if days_since_last >= t.inactive_days:
            return RetentionTag.INACTIVE
        if days_since_last >= t.at_risk_days:
            return RetentionTag.AT_RISK
        if days_since_first is not None and days_since_first <= t.new_client_days:
            return RetentionTag.NEW
        if previous_gap_days is None or previous_gap_days < t.returning_gap_days:
            return RetentionTag.ACTIVE
        return RetentionTag.RETURNING

    def retention_tag(self, owner: DogOwner, now: Optional[datetime] = None) -> RetentionTag:
        """Retention tag for a single owner."""
        now = now or datetime.now()
        visits = owner.visits_before(now)
        if not visits:
            return self.tag_for_days(None)

        days_since_last = days_between(visits[-1], now)
        days_since_first = days_between(visits[0], now)
        previous_gap = days_between(visits[-2], visits[-1]) if len(visits) > 1 else None
        return self.tag_for_days(days_since_last, days_since_first, previous_gap)

    def retention_stats(self,
                        owners: Sequence[DogOwner],
                        now: Optional[datetime] = None) -> Dict[RetentionTag, int]:
        """Number of owners per retention tag, zero counts included."""
        now = now or datetime.now()
        stats = {tag: 0 for tag in RetentionTag}
        for owner in owners:
            stats[self.retention_tag(owner, now)] += 1
        summary = ', '.join(f"{tag.value}={count}" for tag, count in stats.items())
        logger.info(f"Retention stats for {len(owners)} owners: {summary}")
        return stats

    def owners_with_tag(self,
                        owners: Sequence[DogOwner],
                        tag: RetentionTag,
                        now: Optional[datetime] = None) -> List[DogOwner]:
        now = now or datetime.now()
        return [owner for owner in owners if self.retention_tag(owner, now) == tag]

    def new_client_owners(self, owners: Sequence[DogOwner], now: Optional[datetime] = None) -> List[DogOwner]:
        return self.owners_with_tag(owners, RetentionTag.NEW, now)

    def retention_risk_owners(self, owners: Sequence[DogOwner], now: Optional[datetime] = None) -> List[DogOwner]:
        return self.owners_with_tag(owners, RetentionTag.AT_RISK, now)

    def inactive_owners(self, owners: Sequence[DogOwner], now: Optional[datetime] = None) -> List[DogOwner]:
        return self.owners_with_tag(owners, RetentionTag.INACTIVE, now)
