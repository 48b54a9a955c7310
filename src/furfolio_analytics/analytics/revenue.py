import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..config import RevenueConfig
from ..models import Charge, DogOwner, ServiceType
from ..utils import top_n

logger = logging.getLogger(__name__)


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class RevenueAnalyzer:
    """Revenue totals, breakdowns, growth and a simple next-month forecast."""

    def __init__(self, config: Optional[RevenueConfig] = None):
        self.config = config or RevenueConfig()

    def total_revenue(self,
                      charges: Sequence[Charge],
                      start: Optional[datetime] = None,
                      end: Optional[datetime] = None) -> float:
        """
        Sum of charge amounts within ``[start, end]``.

        Raises:
            ValueError: If ``start`` is after ``end``
        """
        if start is not None and end is not None and start > end:
            raise ValueError("start must not be after end")
        return float(sum(
            c.amount for c in charges
            if (start is None or c.date >= start) and (end is None or c.date <= end)
        ))

    def revenue_by_service(self, charges: Sequence[Charge]) -> Dict[ServiceType, float]:
        """Charge totals grouped by the charge's own service type."""
        totals: Dict[ServiceType, float] = {}
        for charge in charges:
            totals[charge.service_type] = totals.get(charge.service_type, 0.0) + charge.amount
        return totals

    def daily_revenue(self,
                      charges: Sequence[Charge],
                      start: datetime,
                      end: datetime) -> pd.Series:
        """
        Revenue per calendar day from ``start`` to ``end`` inclusive.

        Returns:
            Series indexed by day with zero for days without charges
        """
        start_day = pd.Timestamp(start).normalize()
        end_day = pd.Timestamp(end).normalize()
        calendar = pd.date_range(start_day, end_day, freq='D')

        in_range = [c for c in charges if start_day <= pd.Timestamp(c.date).normalize() <= end_day]
        if not in_range:
            return pd.Series(0.0, index=calendar, name='revenue')

        series = pd.Series(
            [c.amount for c in in_range],
            index=pd.DatetimeIndex([c.date for c in in_range]),
            name='revenue'
        )
        return series.resample('D').sum().reindex(calendar, fill_value=0.0)

    def top_clients(self,
                    owners: Sequence[DogOwner],
                    charges: Sequence[Charge],
                    n: Optional[int] = None) -> List[Tuple[DogOwner, float]]:
        """Top-N owners by total spend; ties keep owner order."""
        n = self.config.top_clients if n is None else n
        spend = {owner.id: 0.0 for owner in owners}
        for charge in charges:
            if charge.owner_id in spend:
                spend[charge.owner_id] += charge.amount
        by_id = {owner.id: owner for owner in owners}
        return [(by_id[owner_id], total) for owner_id, total in top_n(spend, n)]

    def revenue_growth(self,
                       charges: Sequence[Charge],
                       days: Optional[int] = None,
                       now: Optional[datetime] = None) -> float:
        """
        Percent change of revenue between the last ``days`` and the period before.

        Returns 100.0 when the previous period had no revenue.
        """
        days = self.config.growth_window_days if days is None else days
        if days <= 0:
            raise ValueError("days must be positive")
        now = now or datetime.now()
        period_start = now - timedelta(days=days)
        previous_start = now - timedelta(days=2 * days)

        current = sum(c.amount for c in charges if period_start <= c.date <= now)
        previous = sum(c.amount for c in charges if previous_start <= c.date < period_start)
        if previous <= 0:
            return 100.0
        growth = (current - previous) / previous * 100
        logger.debug(f"revenue_growth over {days} days: {growth:.2f}%")
        return growth

    def forecast_next_month(self, charges: Sequence[Charge], now: Optional[datetime] = None) -> float:
        """
        Next month's revenue projected from this month's growth over last month.

        Without revenue last month the projection is this month's total.
        """
        now = now or datetime.now()
        this_start = _month_start(now)
        last_start = _month_start(this_start - timedelta(days=1))

        this_month = sum(c.amount for c in charges if this_start <= c.date <= now)
        last_month = sum(c.amount for c in charges if last_start <= c.date < this_start)
        growth = (this_month - last_month) / last_month if last_month > 0 else 0.0
        return max(this_month + this_month * growth, 0.0)

    def monthly_goal_progress(self,
                              charges: Sequence[Charge],
                              goal: Optional[float] = None,
                              now: Optional[datetime] = None) -> Tuple[float, float]:
        """
        This month's revenue and progress toward ``goal``.

        Returns:
            ``(total, progress)`` with progress capped at 1.0

        Raises:
            ValueError: If the goal is not positive
        """
        goal = self.config.monthly_goal if goal is None else goal
        if goal <= 0:
            raise ValueError("monthly goal must be positive")
        now = now or datetime.now()
        total = sum(c.amount for c in charges if _month_start(now) <= c.date <= now)
        return float(total), min(total / goal, 1.0)
