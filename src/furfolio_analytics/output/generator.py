"""
Output generation for Furfolio analytics runs.
"""
import json
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import pandas as pd
from loguru import logger

from furfolio_analytics.config import OutputConfig


class ReportGenerator:
    """
    Writes the analytics report, the per-owner churn scores and a plain-text
    loyalty and retention summary.
    """

    def __init__(self, output_dir: Union[str, Path], config: Optional[OutputConfig] = None):
        """
        Initialize the report generator.

        Args:
            output_dir: Directory for output files
            config: Output file names
        """
        self.output_dir = Path(output_dir)
        self.config = config or OutputConfig()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(self,
                 report: Dict[str, Any],
                 churn_scores: Optional[pd.DataFrame] = None,
                 processing_statistics: Optional[Dict[str, Any]] = None) -> Dict[str, Path]:
        """
        Generate every output file.

        Args:
            report: Report dictionary produced by the pipeline
            churn_scores: Per-owner churn scores
            processing_statistics: Pipeline statistics, embedded in the JSON report

        Returns:
            Dict[str, Path]: Written files keyed by kind
        """
        written = {'report': self.write_json_report(report, processing_statistics)}
        if churn_scores is not None:
            written['scores'] = self.write_scores(churn_scores)
        written['text_report'] = self.write_text_report(report)
        return written

    def write_json_report(self, report: Dict[str, Any],
                          processing_statistics: Optional[Dict[str, Any]] = None) -> Path:
        data = dict(report)
        if processing_statistics is not None:
            data['processing_statistics'] = processing_statistics

        output_file = self.output_dir / self.config.report_file
        with open(output_file, "w") as f:
            json.dump(self._prepare_data_for_json(data), f, indent=2)

        logger.info(f"Generated analytics report: {output_file}")
        return output_file

    def write_scores(self, churn_scores: pd.DataFrame) -> Path:
        output_file = self.output_dir / self.config.scores_file
        churn_scores.to_csv(output_file, index=False, float_format='%.4f')
        logger.info(f"Generated owner scores: {output_file} ({len(churn_scores)} rows)")
        return output_file

    def write_text_report(self, report: Dict[str, Any]) -> Path:
        output_file = self.output_dir / self.config.text_report_file
        with open(output_file, "w") as f:
            f.write(self.render_text_report(report))
        logger.info(f"Generated loyalty and retention report: {output_file}")
        return output_file

    def render_text_report(self, report: Dict[str, Any]) -> str:
        """Plain-text loyalty and retention report."""
        lines = [
            f"{report.get('name', 'Furfolio Analytics')} - Loyalty & Retention Report",
            "=" * 50,
            f"As of: {report.get('as_of', '')}",
            ""
        ]

        retention = report.get('retention')
        if retention:
            summary = retention['summary']
            lines.append(f"Retention: {summary['text']}")
            for tag, count in retention['stats'].items():
                lines.append(f"  {tag:<10} {count}")
            if retention['alerts']:
                lines.append("")
                lines.append("Alerts:")
                for alert in retention['alerts']:
                    lines.append(f"- {alert['message']}")
            lines.append("")

        churn = report.get('churn')
        if churn:
            bands = churn['bands']
            lines.append(f"Churn risk: {bands['high']} high, {bands['moderate']} moderate, {bands['low']} low")
            lines.append("")

        loyalty = report.get('loyalty')
        if loyalty:
            lines.append(f"Loyalty: {loyalty['eligible_owners']} owners eligible for a reward")
            for account in loyalty['accounts']:
                lines.append(
                    f"  {account['owner_id']}: {account['tier']} tier, {account['points']} points, "
                    f"{account['visit_count']} visits, {round(account['reward_progress'] * 100)}% to reward"
                )
            lines.append("")

        revenue = report.get('revenue')
        if revenue:
            lines.append(f"Revenue: {revenue['total']:.2f} total, {revenue['growth_percent']:.1f}% growth, "
                         f"{revenue['forecast_next_month']:.2f} forecast next month")

        return "\n".join(lines).rstrip() + "\n"

    def _prepare_data_for_json(self, data: Any) -> Any:
        """
        Prepare data for JSON serialization by converting datetime and numpy values.

        Args:
            data: Data to prepare

        Returns:
            Any: Prepared data
        """
        if isinstance(data, dict):
            return {str(getattr(k, 'value', k)): self._prepare_data_for_json(v) for k, v in data.items()}
        elif isinstance(data, (list, tuple)):
            return [self._prepare_data_for_json(item) for item in data]
        elif isinstance(data, (datetime, date, pd.Timestamp)):
            return data.isoformat()
        elif isinstance(data, Enum):
            return data.value
        elif isinstance(data, np.integer):
            return int(data)
        elif isinstance(data, np.floating):
            return None if np.isnan(data) else float(data)
        elif isinstance(data, float) and np.isnan(data):
            return None
        elif hasattr(data, "to_dict"):
            return self._prepare_data_for_json(data.to_dict())
        return data
