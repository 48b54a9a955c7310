import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import Appointment, Charge, ServiceType
from ..utils import top_n

logger = logging.getLogger(__name__)


class ServiceMetrics:
    """Aggregated metrics for a single service type."""

    def __init__(self, frequency: int = 0, average_duration: float = 0.0, total_revenue: float = 0.0):
        """
        Args:
            frequency: Number of appointments
            average_duration: Average duration in minutes
            total_revenue: Total revenue from linked charges
        """
        self.frequency = frequency
        self.average_duration = average_duration
        self.total_revenue = total_revenue

    @property
    def revenue_per_minute(self) -> float:
        """Revenue per minute across all appointments of this type."""
        total_minutes = self.average_duration * self.frequency
        return self.total_revenue / total_minutes if total_minutes > 0 else 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'frequency': self.frequency,
            'average_duration': round(self.average_duration, 2),
            'total_revenue': round(self.total_revenue, 2),
            'revenue_per_minute': round(self.revenue_per_minute, 4)
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, ServiceMetrics):
            return NotImplemented
        return (self.frequency, self.average_duration, self.total_revenue) == \
            (other.frequency, other.average_duration, other.total_revenue)

    def __repr__(self) -> str:
        return (f"ServiceMetrics(frequency={self.frequency}, average_duration={self.average_duration}, "
                f"total_revenue={self.total_revenue})")


class ServiceAnalytics:
    """Frequency, duration and revenue metrics per service type."""

    def __init__(self, top_limit: int = 5):
        """
        Args:
            top_limit: Default number of services returned by the top-N helpers
        """
        self.top_limit = top_limit

    def appointment_frequency(self, appointments: Sequence[Appointment]) -> Dict[ServiceType, int]:
        """Count of appointments grouped by service type."""
        counts: Dict[ServiceType, int] = {}
        for appointment in appointments:
            counts[appointment.service_type] = counts.get(appointment.service_type, 0) + 1
        logger.debug(f"appointment_frequency over {len(appointments)} appointments: {counts}")
        return counts

    def average_duration(self, appointments: Sequence[Appointment]) -> Dict[ServiceType, float]:
        """
        Average appointment duration per service type.

        Appointments without a recorded duration are ignored; a service type with
        no known durations is left out of the result.
        """
        stats: Dict[ServiceType, Tuple[float, int]] = {}
        for appointment in appointments:
            if appointment.duration_minutes is None:
                continue
            total, count = stats.get(appointment.service_type, (0.0, 0))
            stats[appointment.service_type] = (total + appointment.duration_minutes, count + 1)

        return {service: total / count for service, (total, count) in stats.items() if count > 0}

    def revenue_by_service(self,
                           appointments: Sequence[Appointment],
                           charges: Sequence[Charge]) -> Dict[ServiceType, float]:
        """
        Sum of charge amounts keyed by the service type of the linked appointment.

        Charges that do not reference one of ``appointments`` are skipped.
        """
        service_map = {appointment.id: appointment.service_type for appointment in appointments}
        sums: Dict[ServiceType, float] = {}
        skipped = 0
        for charge in charges:
            service = service_map.get(charge.appointment_id) if charge.appointment_id else None
            if service is None:
                skipped += 1
                continue
            sums[service] = sums.get(service, 0.0) + charge.amount

        if skipped:
            logger.debug(f"revenue_by_service skipped {skipped} charges without a known appointment")
        return sums

    def metrics(self,
                appointments: Sequence[Appointment],
                charges: Sequence[Charge]) -> Dict[ServiceType, ServiceMetrics]:
        """
        Combined frequency, average duration and revenue for every service type.

        Args:
            appointments: Appointments to aggregate
            charges: Charges, linked to appointments through ``appointment_id``

        Returns:
            Mapping of each ServiceType to its ServiceMetrics
        """
        logger.info(f"Computing service metrics for {len(appointments)} appointments and {len(charges)} charges")

        stats: Dict[ServiceType, List[float]] = {}
        for appointment in appointments:
            entry = stats.setdefault(appointment.service_type, [0, 0.0, 0])
            entry[0] += 1
            if appointment.duration_minutes is not None:
                entry[1] += appointment.duration_minutes
                entry[2] += 1

        revenues = self.revenue_by_service(appointments, charges)

        result = {}
        for service in ServiceType:
            frequency, duration_sum, duration_count = stats.get(service, (0, 0.0, 0))
            result[service] = ServiceMetrics(
                frequency=int(frequency),
                average_duration=duration_sum / duration_count if duration_count > 0 else 0.0,
                total_revenue=revenues.get(service, 0.0)
            )
        return result

    # Top services helpers

    def top_revenue_services(self,
                             metrics: Dict[ServiceType, ServiceMetrics],
                             limit: Optional[int] = None) -> List[Tuple[ServiceType, ServiceMetrics]]:
        """Top-N service types by total revenue."""
        limit = self.top_limit if limit is None else limit
        ranked = top_n({s: m.total_revenue for s, m in metrics.items()}, limit, order=list(ServiceType))
        return [(service, metrics[service]) for service, _ in ranked]

    def top_frequent_services(self,
                              metrics: Dict[ServiceType, ServiceMetrics],
                              limit: Optional[int] = None) -> List[Tuple[ServiceType, int]]:
        """Top-N service types by appointment frequency."""
        limit = self.top_limit if limit is None else limit
        return top_n({s: m.frequency for s, m in metrics.items()}, limit, order=list(ServiceType))

    def top_revenue_per_minute_services(self,
                                        metrics: Dict[ServiceType, ServiceMetrics],
                                        limit: Optional[int] = None) -> List[Tuple[ServiceType, float]]:
        """Top-N service types by revenue per minute."""
        limit = self.top_limit if limit is None else limit
        return top_n({s: m.revenue_per_minute for s, m in metrics.items()}, limit, order=list(ServiceType))
