import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..audit import AuditLog
from ..models import DogOwner
from .retention import CustomerRetentionAnalyzer, RetentionTag

logger = logging.getLogger(__name__)


class RetentionAlertType(str, Enum):
    """Retention alert categories, declared in priority order."""
    RETENTION_RISK = "retention_risk"
    INACTIVE = "inactive"
    NEW_CLIENT = "new_client"

    @property
    def label(self) -> str:
        return {
            RetentionAlertType.RETENTION_RISK: "Retention Risk",
            RetentionAlertType.INACTIVE: "Inactive",
            RetentionAlertType.NEW_CLIENT: "New Client",
        }[self]

    @property
    def icon(self) -> str:
        return {
            RetentionAlertType.RETENTION_RISK: "exclamationmark.triangle.fill",
            RetentionAlertType.INACTIVE: "zzz",
            RetentionAlertType.NEW_CLIENT: "sparkles",
        }[self]

    @property
    def color(self) -> str:
        return {
            RetentionAlertType.RETENTION_RISK: "orange",
            RetentionAlertType.INACTIVE: "gray",
            RetentionAlertType.NEW_CLIENT: "blue",
        }[self]


_TAG_TO_ALERT = {
    RetentionTag.AT_RISK: RetentionAlertType.RETENTION_RISK,
    RetentionTag.INACTIVE: RetentionAlertType.INACTIVE,
    RetentionTag.NEW: RetentionAlertType.NEW_CLIENT,
}


class RetentionAlert:
    """A single retention alert for an owner."""

    def __init__(self,
                 owner_id: str,
                 alert_type: RetentionAlertType,
                 message: str,
                 last_appointment: Optional[datetime] = None):
        self.owner_id = owner_id
        self.alert_type = alert_type
        self.message = message
        self.last_appointment = last_appointment

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            'owner_id': self.owner_id,
            'type': self.alert_type.value,
            'message': self.message,
            'last_appointment': self.last_appointment.isoformat() if self.last_appointment else None
        }

    def __repr__(self) -> str:
        return f"RetentionAlert({self.owner_id!r}, {self.alert_type.value}, {self.message!r})"


class RetentionAlertEngine:
    """
    Generates retention alerts and summaries for dog owners.

    Alerts are produced for owners tagged at risk, inactive or new; active and
    returning owners produce none. Every alert is passed to the optional
    ``alert_handler`` and recorded in the audit log.
    """

    def __init__(self,
                 analyzer: Optional[CustomerRetentionAnalyzer] = None,
                 audit_log: Optional[AuditLog] = None,
                 alert_handler: Optional[Callable[[RetentionAlert], None]] = None):
        self.analyzer = analyzer or CustomerRetentionAnalyzer()
        self.audit_log = audit_log
        self.alert_handler = alert_handler

    def _message(self, owner: DogOwner, alert_type: RetentionAlertType) -> str:
        thresholds = self.analyzer.thresholds
        if alert_type == RetentionAlertType.RETENTION_RISK:
            return (f"{owner.owner_name} is at risk of churn "
                    f"(no appointment in over {thresholds.at_risk_days} days).")
        if alert_type == RetentionAlertType.INACTIVE:
            return (f"{owner.owner_name} is now inactive "
                    f"(no appointment in over {thresholds.inactive_days} days).")
        return f"{owner.owner_name} is a new client, engage and welcome!"

    def generate_alerts(self,
                        owners: Sequence[DogOwner],
                        now: Optional[datetime] = None) -> List[RetentionAlert]:
        """
        Generate retention alerts for the given owners.

        Args:
            owners: Owners to analyze
            now: Reference time, defaults to the current time

        Returns:
            List of alerts, in owner order
        """
        now = now or datetime.now()
        alerts = []
        for owner in owners:
            tag = self.analyzer.retention_tag(owner, now)
            alert_type = _TAG_TO_ALERT.get(tag)
            if alert_type is None:
                continue

            alert = RetentionAlert(
                owner_id=owner.id,
                alert_type=alert_type,
                message=self._message(owner, alert_type),
                last_appointment=owner.last_visit_before(now)
            )
            alerts.append(alert)

            if self.alert_handler:
                self.alert_handler(alert)
            if self.audit_log is not None:
                self.audit_log.record('retention_alert_generated',
                                      {'owner_id': owner.id, 'type': alert_type.value}, timestamp=now)

        logger.info(f"Generated {len(alerts)} retention alerts for {len(owners)} owners")
        return alerts

    def alert_summary(self,
                      owners: Sequence[DogOwner],
                      now: Optional[datetime] = None) -> Dict[RetentionAlertType, int]:
        """Number of alerts per alert type (types without alerts are omitted)."""
        summary: Dict[RetentionAlertType, int] = {}
        for alert in self.generate_alerts(owners, now):
            summary[alert.alert_type] = summary.get(alert.alert_type, 0) + 1
        return summary

    def ui_summary(self,
                   owners: Sequence[DogOwner],
                   now: Optional[datetime] = None) -> Tuple[str, str, str]:
        """
        Summary text, badge color and icon for the highest-priority alert type present.

        Priority order is retention risk, then inactive, then new client.
        """
        summary = self.alert_summary(owners, now)
        if not summary:
            return "No retention alerts", "green", "checkmark.circle"

        top_type = next(t for t in RetentionAlertType if summary.get(t, 0) > 0)
        count = summary[top_type]
        text = f"{count} {top_type.label}{'s' if count > 1 else ''}"
        return text, top_type.color, top_type.icon

    def owners_at_risk(self, owners: Sequence[DogOwner], now: Optional[datetime] = None) -> List[DogOwner]:
        return self.analyzer.retention_risk_owners(owners, now)

    def inactive_owners(self, owners: Sequence[DogOwner], now: Optional[datetime] = None) -> List[DogOwner]:
        return self.analyzer.inactive_owners(owners, now)
