import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..config import TrendConfig
from ..models import Appointment, ServiceType
from ..utils import top_n

logger = logging.getLogger(__name__)


def _check_alpha(alpha: float) -> None:
    if not 0 <= alpha <= 1:
        raise ValueError(f"alpha must be within [0, 1], got {alpha}")


def smoothed_series(series: Sequence[float], alpha: float) -> List[float]:
    """
    Exponentially smoothed values for every step of ``series``.

    The first value seeds the forecast; each following step is
    ``alpha * x_t + (1 - alpha) * f_{t-1}``.
    """
    _check_alpha(alpha)
    if not series:
        return []

    forecast = float(series[0])
    result = [forecast]
    for value in series[1:]:
        forecast = alpha * float(value) + (1 - alpha) * forecast
        result.append(forecast)
    return result


def exponential_smoothing(series: Sequence[float], alpha: float) -> float:
    """Final smoothed value of ``series``; 0.0 for an empty series."""
    steps = smoothed_series(series, alpha)
    return steps[-1] if steps else 0.0


class ServiceTrendAnalyzer:
    """
    Surfaces service usage trends.

    Covers plain frequency, windowed growth scores comparing the recent period
    against the one before it, and an exponential-smoothing forecast over
    daily appointment counts.
    """

    def __init__(self, config: Optional[TrendConfig] = None):
        """
        Initialize the trend analyzer.

        Args:
            config: Trend configuration (window sizes, smoothing factor, top-N limit)
        """
        self.config = config or TrendConfig()

    def frequency(self, appointments: Sequence[Appointment]) -> Dict[ServiceType, int]:
        """Usage count of each service type."""
        counts: Dict[ServiceType, int] = {}
        for appointment in appointments:
            counts[appointment.service_type] = counts.get(appointment.service_type, 0) + 1
        return counts

    def top_services(self,
                     appointments: Sequence[Appointment],
                     n: Optional[int] = None) -> List[Tuple[ServiceType, int]]:
        """Top-N most frequently booked services, descending."""
        n = self.config.top_limit if n is None else n
        return top_n(self.frequency(appointments), n, order=list(ServiceType))

    def split_windows(self,
                      appointments: Sequence[Appointment],
                      window_days: int,
                      now: datetime) -> Tuple[List[Appointment], List[Appointment]]:
        """
        Partition appointments into the recent and previous windows.

        Recent covers ``[now - window_days, now]``, previous covers
        ``[now - 2 * window_days, now - window_days)``. Anything else is dropped.
        """
        recent_start = now - timedelta(days=window_days)
        previous_start = now - timedelta(days=2 * window_days)

        recent = [a for a in appointments if recent_start <= a.date <= now]
        previous = [a for a in appointments if previous_start <= a.date < recent_start]
        return recent, previous

    def trend_scores(self,
                     appointments: Sequence[Appointment],
                     window_days: Optional[int] = None,
                     now: Optional[datetime] = None) -> Dict[ServiceType, float]:
        """
        Percent-change score per service type between the two windows.

        Args:
            appointments: Appointments to analyze
            window_days: Size of each window in days
            now: Reference time, defaults to the current time

        Returns:
            Mapping of every ServiceType to ``(recent - previous) / previous``.
            With no previous usage the score is 1.0 when there is recent usage
            and 0.0 otherwise.
        """
        window_days = self.config.trend_window_days if window_days is None else window_days
        if window_days <= 0:
            raise ValueError("window_days must be positive")
        now = now or datetime.now()

        recent, previous = self.split_windows(appointments, window_days, now)
        recent_freq = self.frequency(recent)
        previous_freq = self.frequency(previous)

        scores = {}
        for service in ServiceType:
            r = float(recent_freq.get(service, 0))
            p = float(previous_freq.get(service, 0))
            if p == 0:
                scores[service] = 1.0 if r > 0 else 0.0
            else:
                scores[service] = (r - p) / p

        logger.debug(f"trend_scores over {window_days}-day windows: {scores}")
        return scores

    def top_trending_services(self,
                              appointments: Sequence[Appointment],
                              n: Optional[int] = None,
                              window_days: Optional[int] = None,
                              now: Optional[datetime] = None) -> List[Tuple[ServiceType, float]]:
        """Top-N services by trend score (highest growth first)."""
        n = self.config.top_limit if n is None else n
        scores = self.trend_scores(appointments, window_days, now)
        return top_n(scores, n, order=list(ServiceType))

    def daily_counts(self,
                     service: ServiceType,
                     appointments: Sequence[Appointment],
                     days: Optional[int] = None,
                     now: Optional[datetime] = None) -> List[int]:
        """
        Daily appointment counts for one service, earliest day first.

        The series covers the ``days`` calendar days ending on ``now``'s date,
        with zero for days without appointments.
        """
        days = self.config.forecast_window_days if days is None else days
        if days <= 0:
            return []
        now = now or datetime.now()

        end_day = pd.Timestamp(now).normalize()
        start_day = end_day - pd.Timedelta(days=days - 1)
        calendar = pd.date_range(start_day, end_day, freq='D')

        dates = pd.Series(
            [a.date for a in appointments if a.service_type == service],
            dtype='datetime64[ns]'
        ).dt.normalize()
        dates = dates[(dates >= start_day) & (dates <= end_day)]

        counts = dates.value_counts().reindex(calendar, fill_value=0)
        return [int(count) for count in counts.tolist()]

    def forecast(self,
                 service: ServiceType,
                 appointments: Sequence[Appointment],
                 days: Optional[int] = None,
                 alpha: Optional[float] = None,
                 now: Optional[datetime] = None) -> float:
        """
        Forecast next-day usage of ``service`` with exponential smoothing.

        Args:
            service: Service type to forecast
            appointments: Appointments to analyze
            days: Number of past days in the series
            alpha: Smoothing factor within [0, 1]
            now: Reference time, defaults to the current time

        Returns:
            Forecasted count for the next day
        """
        alpha = self.config.forecast_alpha if alpha is None else alpha
        _check_alpha(alpha)
        counts = self.daily_counts(service, appointments, days, now)
        result = exponential_smoothing(counts, alpha)
        logger.debug(f"forecast for {service.value} over {len(counts)} days with alpha {alpha}: {result}")
        return result

    def forecast_all(self,
                     appointments: Sequence[Appointment],
                     days: Optional[int] = None,
                     alpha: Optional[float] = None,
                     now: Optional[datetime] = None) -> Dict[ServiceType, float]:
        """Forecast for every service type."""
        return {service: self.forecast(service, appointments, days, alpha, now) for service in ServiceType}
