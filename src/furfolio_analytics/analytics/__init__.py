"""
Analytics engines for Furfolio.
"""
from furfolio_analytics.analytics.service_analytics import ServiceAnalytics, ServiceMetrics
from furfolio_analytics.analytics.trend_analyzer import (
    ServiceTrendAnalyzer,
    exponential_smoothing,
    smoothed_series
)
from furfolio_analytics.analytics.churn_risk import ChurnRiskEngine, RFMValues
from furfolio_analytics.analytics.behavior_scoring import (
    BehaviorScoring,
    SeverityLevel,
    RiskCategory,
    DEFAULT_KEYWORDS
)
from furfolio_analytics.analytics.retention import CustomerRetentionAnalyzer, RetentionTag
from furfolio_analytics.analytics.alerts import RetentionAlertEngine, RetentionAlert, RetentionAlertType
from furfolio_analytics.analytics.loyalty import LoyaltyRewardEngine
from furfolio_analytics.analytics.revenue import RevenueAnalyzer

__all__ = [
    'ServiceAnalytics',
    'ServiceMetrics',
    'ServiceTrendAnalyzer',
    'exponential_smoothing',
    'smoothed_series',
    'ChurnRiskEngine',
    'RFMValues',
    'BehaviorScoring',
    'SeverityLevel',
    'RiskCategory',
    'DEFAULT_KEYWORDS',
    'CustomerRetentionAnalyzer',
    'RetentionTag',
    'RetentionAlertEngine',
    'RetentionAlert',
    'RetentionAlertType',
    'LoyaltyRewardEngine',
    'RevenueAnalyzer'
]
