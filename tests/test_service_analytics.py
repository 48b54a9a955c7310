import pytest

from furfolio_analytics.analytics import ServiceAnalytics, ServiceMetrics
from furfolio_analytics.models import ServiceType


@pytest.fixture
def analytics():
    return ServiceAnalytics()


@pytest.fixture
def appointments(make_appointment):
    return [
        make_appointment(1, ServiceType.FULL_GROOM, duration=90),
        make_appointment(2, ServiceType.FULL_GROOM, duration=None),
        make_appointment(3, ServiceType.FULL_GROOM, duration=110),
        make_appointment(4, ServiceType.BASIC_BATH, duration=40),
        make_appointment(5, ServiceType.NAIL_TRIM, duration=None),
    ]


class TestFrequency:
    def test_counts_per_service(self, analytics, appointments):
        counts = analytics.appointment_frequency(appointments)
        assert counts == {ServiceType.FULL_GROOM: 3, ServiceType.BASIC_BATH: 1, ServiceType.NAIL_TRIM: 1}

    def test_counts_sum_to_total(self, analytics, appointments):
        assert sum(analytics.appointment_frequency(appointments).values()) == len(appointments)

    def test_empty(self, analytics):
        assert analytics.appointment_frequency([]) == {}


class TestAverageDuration:
    def test_ignores_missing_durations(self, analytics, appointments):
        averages = analytics.average_duration(appointments)
        assert averages[ServiceType.FULL_GROOM] == pytest.approx(100.0)
        assert averages[ServiceType.BASIC_BATH] == pytest.approx(40.0)

    def test_service_without_durations_is_absent(self, analytics, appointments):
        assert ServiceType.NAIL_TRIM not in analytics.average_duration(appointments)

    def test_zero_duration_counts(self, analytics, make_appointment):
        averages = analytics.average_duration([
            make_appointment(1, ServiceType.CUSTOM, duration=0),
            make_appointment(2, ServiceType.CUSTOM, duration=30),
        ])
        assert averages[ServiceType.CUSTOM] == pytest.approx(15.0)


class TestRevenue:
    def test_revenue_keyed_by_linked_appointment(self, analytics, appointments, make_charge):
        charges = [
            make_charge(80.0, appointment_id=appointments[0].id),
            make_charge(20.0, appointment_id=appointments[0].id),
            make_charge(35.0, appointment_id=appointments[3].id, service=ServiceType.FULL_GROOM),
        ]
        revenue = analytics.revenue_by_service(appointments, charges)
        assert revenue == {ServiceType.FULL_GROOM: 100.0, ServiceType.BASIC_BATH: 35.0}

    def test_unlinked_charges_are_skipped(self, analytics, appointments, make_charge):
        charges = [
            make_charge(50.0, appointment_id=appointments[1].id),
            make_charge(999.0, appointment_id="missing"),
            make_charge(10.0),
        ]
        revenue = analytics.revenue_by_service(appointments, charges)
        assert sum(revenue.values()) == pytest.approx(50.0)


class TestMetrics:
    def test_every_service_present(self, analytics):
        metrics = analytics.metrics([], [])
        assert set(metrics) == set(ServiceType)
        assert all(m == ServiceMetrics() for m in metrics.values())

    def test_revenue_per_minute(self, analytics, appointments, make_charge):
        charges = [make_charge(300.0, appointment_id=appointments[0].id)]
        metrics = analytics.metrics(appointments, charges)
        groom = metrics[ServiceType.FULL_GROOM]
        assert groom.frequency == 3
        assert groom.average_duration == pytest.approx(100.0)
        assert groom.revenue_per_minute == pytest.approx(1.0)
        assert metrics[ServiceType.NAIL_TRIM].revenue_per_minute == 0.0

    def test_totals_across_categories(self, analytics, appointments, make_charge):
        charges = [make_charge(10.0 * (i + 1), appointment_id=a.id) for i, a in enumerate(appointments)]
        metrics = analytics.metrics(appointments, charges)
        assert sum(m.frequency for m in metrics.values()) == len(appointments)
        assert sum(m.total_revenue for m in metrics.values()) == pytest.approx(sum(c.amount for c in charges))


class TestTopServices:
    def test_top_frequent_with_tie_order(self, analytics, appointments):
        metrics = analytics.metrics(appointments, [])
        top = analytics.top_frequent_services(metrics, limit=3)
        assert top == [
            (ServiceType.FULL_GROOM, 3),
            (ServiceType.BASIC_BATH, 1),
            (ServiceType.NAIL_TRIM, 1),
        ]

    def test_default_limit(self, appointments):
        analytics = ServiceAnalytics(top_limit=2)
        metrics = analytics.metrics(appointments, [])
        assert len(analytics.top_revenue_services(metrics)) == 2
        assert analytics.top_revenue_per_minute_services(metrics, limit=0) == []
