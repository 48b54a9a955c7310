"""
Configuration loading for Furfolio analytics.
"""
import logging
import os
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class RetentionThresholds(BaseModel):
    """Day-count thresholds used for retention tagging."""
    new_client_days: int = 30
    at_risk_days: int = 60
    inactive_days: int = 180
    returning_gap_days: int = 90

    @field_validator('new_client_days', 'at_risk_days', 'inactive_days', 'returning_gap_days')
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("retention thresholds must be positive")
        return value

    @model_validator(mode='after')
    def _ordered(self) -> 'RetentionThresholds':
        if self.at_risk_days >= self.inactive_days:
            raise ValueError("at_risk_days must be smaller than inactive_days")
        return self


class ChurnConfig(BaseModel):
    """Weights and caps for RFM churn scoring."""
    recency_weight: float = 0.5
    frequency_weight: float = 0.3
    monetary_weight: float = 0.2
    recency_cap_days: int = 180
    frequency_cap: int = 12
    monetary_cap: float = 1000.0
    moderate_threshold: float = 0.33
    high_threshold: float = 0.66

    @field_validator('recency_weight', 'frequency_weight', 'monetary_weight')
    @classmethod
    def _non_negative_weight(cls, value: float) -> float:
        if value < 0:
            raise ValueError("churn weights must be >= 0")
        return value

    @field_validator('recency_cap_days', 'frequency_cap', 'monetary_cap')
    @classmethod
    def _positive_cap(cls, value):
        if value <= 0:
            raise ValueError("churn caps must be positive")
        return value

    @model_validator(mode='after')
    def _check(self) -> 'ChurnConfig':
        if self.recency_weight + self.frequency_weight + self.monetary_weight <= 0:
            raise ValueError("at least one churn weight must be positive")
        if not 0 <= self.moderate_threshold <= self.high_threshold <= 1:
            raise ValueError("churn band thresholds must satisfy 0 <= moderate <= high <= 1")
        return self


class TrendConfig(BaseModel):
    """Defaults for service trend scoring and forecasting."""
    top_limit: int = 5
    trend_window_days: int = 30
    forecast_window_days: int = 30
    forecast_alpha: float = 0.3

    @field_validator('forecast_alpha')
    @classmethod
    def _alpha_range(cls, value: float) -> float:
        if not 0 <= value <= 1:
            raise ValueError("forecast_alpha must be within [0, 1]")
        return value

    @field_validator('top_limit', 'trend_window_days', 'forecast_window_days')
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("trend windows and limits must be positive")
        return value


class LoyaltyConfig(BaseModel):
    """Loyalty program constants."""
    points_per_reward: int = 50
    visits_per_reward: int = 5
    reward_expiry_days: int = 180
    points_per_currency_unit: float = 1.0

    @field_validator('points_per_reward', 'visits_per_reward', 'reward_expiry_days')
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("loyalty constants must be positive")
        return value


class RevenueConfig(BaseModel):
    growth_window_days: int = 30
    monthly_goal: float = 0.0
    top_clients: int = 5


class BehaviorConfig(BaseModel):
    """Optional keyword table override, severity name -> keywords."""
    keywords: Optional[Dict[str, List[str]]] = None


class InputConfig(BaseModel):
    owners_file: str = 'owners.csv'
    appointments_file: str = 'appointments.csv'
    charges_file: str = 'charges.csv'
    behavior_logs_file: str = 'behavior_logs.csv'
    owner_match_threshold: float = 0.85


class OutputConfig(BaseModel):
    report_file: str = 'analytics_report.json'
    scores_file: str = 'owner_scores.csv'
    text_report_file: str = 'loyalty_retention_report.txt'


class AnalyticsConfig(BaseModel):
    """Complete analytics configuration."""
    name: str = 'Furfolio Analytics'
    version: str = '1.0'
    input_dir: str = 'data/input'
    output_dir: str = 'data/processed'
    audit_buffer_size: int = 100
    retention: RetentionThresholds = Field(default_factory=RetentionThresholds)
    churn: ChurnConfig = Field(default_factory=ChurnConfig)
    trend: TrendConfig = Field(default_factory=TrendConfig)
    loyalty: LoyaltyConfig = Field(default_factory=LoyaltyConfig)
    revenue: RevenueConfig = Field(default_factory=RevenueConfig)
    behavior: BehaviorConfig = Field(default_factory=BehaviorConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


def load_config(config_path_or_dict: Union[str, Dict[str, Any], None] = None) -> AnalyticsConfig:
    """
    Load and validate the analytics configuration.

    Args:
        config_path_or_dict: Path to a YAML file, an already parsed dictionary,
            or None for defaults

    Returns:
        AnalyticsConfig: Validated configuration

    Raises:
        ValueError: If a configuration value is invalid
    """
    if config_path_or_dict is None:
        logger.info("Using default configuration")
        return AnalyticsConfig()

    if isinstance(config_path_or_dict, dict):
        raw = config_path_or_dict
    elif not os.path.isfile(config_path_or_dict):
        logger.warning(f"Config file {config_path_or_dict} not found, using default configuration")
        return AnalyticsConfig()
    else:
        try:
            with open(config_path_or_dict, 'r') as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config file {config_path_or_dict}: {e}")
            raise ValueError(f"Invalid YAML in {config_path_or_dict}") from e

    try:
        return AnalyticsConfig.model_validate(raw)
    except ValueError as e:
        logger.error(f"Invalid analytics configuration: {e}")
        raise
