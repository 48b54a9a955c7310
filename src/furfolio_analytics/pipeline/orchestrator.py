import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

import pandas as pd

from ..analytics import (
    BehaviorScoring,
    ChurnRiskEngine,
    CustomerRetentionAnalyzer,
    LoyaltyRewardEngine,
    RetentionAlertEngine,
    RevenueAnalyzer,
    ServiceAnalytics,
    ServiceTrendAnalyzer
)
from ..audit import AuditLog
from ..config import AnalyticsConfig, load_config
from ..data_ingestion import AnalyticsDataset, DataLoader

logger = logging.getLogger(__name__)


def _round_map(values: Dict[Any, float], digits: int = 4) -> Dict[str, float]:
    return {getattr(key, 'value', key): round(float(value), digits) for key, value in values.items()}


class AnalyticsPipeline:
    """
    Main orchestrator for the analytics run.
    Loads the exports and runs every analytics engine over them.
    """

    def __init__(self,
                 config_path_or_dict: Union[str, Dict[str, Any], AnalyticsConfig, None] = None,
                 now: Optional[datetime] = None):
        """
        Initialize the pipeline with configuration.

        Args:
            config_path_or_dict: Path to the analytics configuration file, a configuration
                dictionary or an AnalyticsConfig
            now: Reference time for every time-based metric, defaults to the start of the run
        """
        if isinstance(config_path_or_dict, AnalyticsConfig):
            self.config = config_path_or_dict
        else:
            self.config = load_config(config_path_or_dict)

        self.now = now
        self.audit_log = AuditLog(self.config.audit_buffer_size)
        self.dataset: Optional[AnalyticsDataset] = None
        self.churn_scores: Optional[pd.DataFrame] = None
        self.behavior_profiles: Optional[pd.DataFrame] = None
        self.loyalty_accounts = []
        self.processing_statistics: Dict[str, Any] = {
            'start_time': None,
            'end_time': None,
            'entities_processed': {},
            'steps_completed': [],
            'errors': []
        }
        self._init_engines()

    def _init_engines(self) -> None:
        cfg = self.config
        self.service_analytics = ServiceAnalytics(cfg.trend.top_limit)
        self.trend_analyzer = ServiceTrendAnalyzer(cfg.trend)
        self.retention_analyzer = CustomerRetentionAnalyzer(cfg.retention)
        self.alert_engine = RetentionAlertEngine(self.retention_analyzer, self.audit_log)
        self.churn_engine = ChurnRiskEngine(cfg.churn, self.audit_log)
        self.behavior_scoring = BehaviorScoring(cfg.behavior.keywords)
        self.loyalty_engine = LoyaltyRewardEngine(cfg.loyalty, self.audit_log)
        self.revenue_analyzer = RevenueAnalyzer(cfg.revenue)

    def _run_step(self, name: str, step: Callable[[], Any], report: Dict[str, Any]) -> None:
        """Run one analytics step, recording failures without stopping the run."""
        try:
            logger.info(f"Running step: {name}")
            report[name] = step()
            self.processing_statistics['steps_completed'].append(name)
        except (ValueError, KeyError, TypeError, ZeroDivisionError) as e:
            logger.warning(f"Step {name} failed: {e}", exc_info=True)
            self.processing_statistics['errors'].append({'step': name, 'error': str(e)})
            self.audit_log.record('pipeline_step_failed', {'step': name, 'error': str(e)})

    # Steps

    def _service_step(self) -> Dict[str, Any]:
        data = self.dataset
        metrics = self.service_analytics.metrics(data.appointments, data.charges)
        return {
            'metrics': {service.value: m.to_dict() for service, m in metrics.items()},
            'top_revenue': [s.value for s, _ in self.service_analytics.top_revenue_services(metrics)],
            'top_frequent': [s.value for s, _ in self.service_analytics.top_frequent_services(metrics)],
            'top_revenue_per_minute': [
                s.value for s, _ in self.service_analytics.top_revenue_per_minute_services(metrics)
            ]
        }

    def _trend_step(self) -> Dict[str, Any]:
        appointments = self.dataset.appointments
        scores = self.trend_analyzer.trend_scores(appointments, now=self.now)
        return {
            'window_days': self.config.trend.trend_window_days,
            'scores': _round_map(scores),
            'top_trending': [
                {'service': s.value, 'score': round(score, 4)}
                for s, score in self.trend_analyzer.top_trending_services(appointments, now=self.now)
            ],
            'forecast_alpha': self.config.trend.forecast_alpha,
            'forecasts': _round_map(self.trend_analyzer.forecast_all(appointments, now=self.now))
        }

    def _retention_step(self) -> Dict[str, Any]:
        owners = self.dataset.owners
        stats = self.retention_analyzer.retention_stats(owners, self.now)
        alerts = self.alert_engine.generate_alerts(owners, self.now)
        text, color, icon = self.alert_engine.ui_summary(owners, self.now)
        return {
            'stats': {tag.value: count for tag, count in stats.items()},
            'tags': {owner.id: self.retention_analyzer.retention_tag(owner, self.now).value for owner in owners},
            'alerts': [alert.to_dict() for alert in alerts],
            'summary': {'text': text, 'color': color, 'icon': icon}
        }

    def _churn_step(self) -> Dict[str, Any]:
        data = self.dataset
        self.churn_scores = self.churn_engine.score_owners(data.owners, data.charges, self.now)
        df = self.churn_scores
        for owner in data.owners:
            self.churn_engine.predict_churn(owner, data.charges, self.now)
        bands = df['risk_band'].value_counts().to_dict() if not df.empty else {}
        records = df.astype(object).where(df.notna(), None).to_dict(orient='records')
        return {
            'bands': {band: int(bands.get(band, 0)) for band in ('low', 'moderate', 'high')},
            'owners': records
        }

    def _behavior_step(self) -> Dict[str, Any]:
        logs = self.dataset.behavior_logs
        self.behavior_profiles = self.behavior_scoring.dog_profiles(logs)
        profiles = self.behavior_profiles.reset_index()
        if not profiles.empty:
            profiles['last_logged'] = profiles['last_logged'].astype(str)
        return {
            'average_severity': round(self.behavior_scoring.average_severity_from_logs(logs), 4),
            'risk_category': self.behavior_scoring.risk_category_from_logs(logs).value,
            'dogs': profiles.to_dict(orient='records')
        }

    def _loyalty_step(self) -> Dict[str, Any]:
        data = self.dataset
        self.loyalty_accounts = [self.loyalty_engine.build_account(o, data.charges) for o in data.owners]
        accounts = []
        for account in self.loyalty_accounts:
            accounts.append({
                'owner_id': account.owner_id,
                'points': account.points,
                'visit_count': account.visit_count,
                'tier': self.loyalty_engine.tier(account.points),
                'spend_tier': self.loyalty_engine.spend_tier(account.total_spent),
                'eligible': self.loyalty_engine.is_eligible(account),
                'reward_progress': round(self.loyalty_engine.reward_progress(account), 4)
            })
        return {
            'eligible_owners': sum(1 for a in accounts if a['eligible']),
            'accounts': accounts
        }

    def _revenue_step(self) -> Dict[str, Any]:
        charges = self.dataset.charges
        analyzer = self.revenue_analyzer
        result = {
            'total': round(analyzer.total_revenue(charges), 2),
            'by_service': _round_map(analyzer.revenue_by_service(charges), 2),
            'growth_percent': round(analyzer.revenue_growth(charges, now=self.now), 2),
            'forecast_next_month': round(analyzer.forecast_next_month(charges, self.now), 2),
            'top_clients': [
                {'owner_id': owner.id, 'owner_name': owner.owner_name, 'total': round(total, 2)}
                for owner, total in analyzer.top_clients(self.dataset.owners, charges)
            ]
        }
        if self.config.revenue.monthly_goal > 0:
            total, progress = analyzer.monthly_goal_progress(charges, now=self.now)
            result['monthly_goal'] = {
                'goal': self.config.revenue.monthly_goal,
                'total': round(total, 2),
                'progress': round(progress, 4)
            }
        return result

    def process(self, dataset: Optional[AnalyticsDataset] = None) -> Dict[str, Any]:
        """
        Run the complete analytics pipeline.

        Args:
            dataset: Already loaded records; loaded from the input directory when omitted

        Returns:
            Report dictionary with one section per analytics step

        Raises:
            FileNotFoundError: If required input is missing
        """
        started = datetime.now()
        self.processing_statistics['start_time'] = started.isoformat()
        self.now = self.now or started

        try:
            logger.info("Loading input data")
            self.dataset = dataset or DataLoader(self.config).load()
        except (OSError, ValueError) as e:
            logger.error(f"Pipeline error: {e}", exc_info=True)
            self.processing_statistics['errors'].append({'step': 'load', 'error': str(e)})
            self._finalize_statistics()
            raise

        self.processing_statistics['entities_processed'] = self.dataset.counts()
        self.processing_statistics['ingestion'] = self.dataset.statistics

        report: Dict[str, Any] = {
            'name': self.config.name,
            'version': self.config.version,
            'generated_at': started.isoformat(),
            'as_of': self.now.isoformat(),
            'counts': self.dataset.counts()
        }

        self._run_step('services', self._service_step, report)
        self._run_step('trends', self._trend_step, report)
        self._run_step('retention', self._retention_step, report)
        self._run_step('churn', self._churn_step, report)
        self._run_step('behavior', self._behavior_step, report)
        self._run_step('loyalty', self._loyalty_step, report)
        self._run_step('revenue', self._revenue_step, report)

        report['audit_events'] = [event.to_dict() for event in self.audit_log.recent(self.config.audit_buffer_size)]
        self._finalize_statistics()

        if self.processing_statistics['errors']:
            logger.warning(f"Pipeline completed with {len(self.processing_statistics['errors'])} errors")
        else:
            logger.info("Pipeline completed successfully")
        return report

    def _finalize_statistics(self) -> Dict[str, Any]:
        """Finalize and return processing statistics."""
        end_time = datetime.now()
        self.processing_statistics['end_time'] = end_time.isoformat()
        start_time = datetime.fromisoformat(self.processing_statistics['start_time'])
        self.processing_statistics['duration_seconds'] = (end_time - start_time).total_seconds()
        return self.processing_statistics
