from datetime import datetime, timedelta

import pytest

from furfolio_analytics.models import (
    Appointment,
    AppointmentStatus,
    Charge,
    DogOwner,
    PetBehaviorLog,
    ServiceType
)

NOW = datetime(2024, 6, 1, 12, 0)


def days_ago(days, now=NOW):
    return now - timedelta(days=days)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_appointment():
    def _make(days_before=0, service=ServiceType.FULL_GROOM, owner_id="owner-1",
              status=AppointmentStatus.COMPLETED, duration=None, **kwargs):
        return Appointment(
            owner_id=owner_id,
            date=days_ago(days_before),
            service_type=service,
            status=status,
            duration_minutes=duration,
            **kwargs
        )

    return _make


@pytest.fixture
def make_owner(make_appointment):
    def _make(visit_days_before=(), owner_id="owner-1", name="Jane Doe",
              status=AppointmentStatus.COMPLETED):
        appointments = [
            make_appointment(days, owner_id=owner_id, status=status) for days in visit_days_before
        ]
        return DogOwner(id=owner_id, owner_name=name, appointments=appointments)

    return _make


@pytest.fixture
def make_charge():
    def _make(amount, days_before=0, owner_id="owner-1", service=ServiceType.FULL_GROOM,
              appointment_id=None):
        return Charge(
            date=days_ago(days_before),
            amount=amount,
            service_type=service,
            owner_id=owner_id,
            appointment_id=appointment_id
        )

    return _make


@pytest.fixture
def make_log():
    def _make(note, dog_id="dog-1", days_before=0):
        return PetBehaviorLog(note=note, dog_id=dog_id, date_logged=days_ago(days_before))

    return _make
