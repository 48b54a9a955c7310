import pytest
from pydantic import ValidationError

from furfolio_analytics.models import Appointment, AppointmentStatus, DogOwner, ServiceType

from conftest import days_ago


class TestDogOwner:
    def test_visit_dates_skip_cancelled_and_no_show(self, make_appointment):
        owner = DogOwner(owner_name="Jane", appointments=[
            make_appointment(10),
            make_appointment(30),
            make_appointment(5, status=AppointmentStatus.CANCELLED),
            make_appointment(3, status=AppointmentStatus.NO_SHOW),
        ])
        assert owner.visit_dates == [days_ago(30), days_ago(10)]
        assert owner.first_appointment_date == days_ago(30)
        assert owner.last_appointment_date == days_ago(10)

    def test_completed_appointments(self, make_appointment):
        owner = DogOwner(owner_name="Jane", appointments=[
            make_appointment(10),
            make_appointment(-5, status=AppointmentStatus.SCHEDULED),
        ])
        assert len(owner.completed_appointments) == 1

    def test_average_interval(self, make_owner):
        assert make_owner([40, 20, 0]).average_appointment_interval == pytest.approx(20.0)
        assert make_owner([5]).average_appointment_interval is None

    def test_visits_before_skip_future_bookings(self, make_appointment, now):
        owner = DogOwner(owner_name="Jane", appointments=[
            make_appointment(20),
            make_appointment(-7, status=AppointmentStatus.SCHEDULED),
        ])
        assert owner.last_appointment_date == days_ago(-7)
        assert owner.visits_before(now) == [days_ago(20)]
        assert owner.last_visit_before(now) == days_ago(20)
        assert owner.last_visit_before(days_ago(30)) is None

    def test_no_history(self, make_owner):
        owner = make_owner([])
        assert owner.last_appointment_date is None
        assert owner.visit_dates == []

    def test_records_are_frozen(self, make_owner):
        owner = make_owner([])
        with pytest.raises(ValidationError):
            owner.owner_name = "Someone else"


class TestAppointment:
    def test_defaults(self, now):
        appointment = Appointment(owner_id="o1", date=now)
        assert appointment.service_type == ServiceType.CUSTOM
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.id

    def test_negative_duration_rejected(self, now):
        with pytest.raises(ValidationError):
            Appointment(owner_id="o1", date=now, duration_minutes=-5)

    def test_display_names(self):
        assert ServiceType.FULL_GROOM.display_name == "Full Groom"
        assert AppointmentStatus.NO_SHOW.display_name == "No Show"
