from datetime import datetime

import pytest

from furfolio_analytics.config import AnalyticsConfig
from furfolio_analytics.data_ingestion import (
    CSVParser,
    DataLoader,
    OwnerResolver,
    parse_service_type,
    parse_status
)
from furfolio_analytics.models import AppointmentStatus, DogOwner, ServiceType

OWNERS_CSV = """Owner Name,Email,Phone,Address
Jane Doe,jane@example.com,555-0101,12 Elm St
Carlos Rivera,carlos@example.com,555-0102,48 Oak Ave
,missing@example.com,,
"""

APPOINTMENTS_CSV = """Date,Time,Service,Dog,Owner,Status,Notes,Duration
2024-05-01,09:00,Full Groom,Biscuit,Jane Doe,Completed,,90
2024-05-20,10:30,basic_bath,Biscuit,jane doe,Completed,,
2024-05-02,14:00,Nail Trim,Rex,Carlos Riviera,No Show,,15
2024-05-03,14:00,Spa Day,Rex,Nobody Known,Completed,,30
not a date,,Full Groom,Rex,Carlos Rivera,Completed,,30
"""

CHARGES_CSV = """Date,Amount,Type,Owner,Dog,Notes
2024-05-01,$85.00,Full Groom,Jane Doe,Biscuit,
2024-05-20,40,Basic Bath,Jane Doe,Biscuit,
2024-05-22,abc,Basic Bath,Jane Doe,Biscuit,
2024-05-02,15,Nail Trim,Carlos Rivera,Rex,
"""

BEHAVIOR_CSV = """Date,Dog,Owner,Note
2024-05-01,Biscuit,Jane Doe,Calm and friendly
2024-05-02,Rex,Carlos Rivera,Tried to bite
2024-05-03,Rex,,
"""


@pytest.fixture
def input_dir(tmp_path):
    (tmp_path / "owners.csv").write_text(OWNERS_CSV)
    (tmp_path / "appointments.csv").write_text(APPOINTMENTS_CSV)
    (tmp_path / "charges.csv").write_text(CHARGES_CSV)
    (tmp_path / "behavior_logs.csv").write_text(BEHAVIOR_CSV)
    return tmp_path


class TestLabels:
    @pytest.mark.parametrize("label,service", [
        ("Full Groom", ServiceType.FULL_GROOM),
        ("full_groom", ServiceType.FULL_GROOM),
        ("BASIC BATH", ServiceType.BASIC_BATH),
        ("nail-trim", ServiceType.NAIL_TRIM),
        ("Spa Day", ServiceType.CUSTOM),
        (None, ServiceType.CUSTOM),
    ])
    def test_service_labels(self, label, service):
        assert parse_service_type(label) == service

    @pytest.mark.parametrize("label,status", [
        ("Completed", AppointmentStatus.COMPLETED),
        ("No Show", AppointmentStatus.NO_SHOW),
        ("canceled", AppointmentStatus.CANCELLED),
        ("In Progress", AppointmentStatus.IN_PROGRESS),
        ("whatever", AppointmentStatus.SCHEDULED),
    ])
    def test_status_labels(self, label, status):
        assert parse_status(label) == status


class TestCSVParser:
    def test_semicolon_delimiter(self, tmp_path):
        path = tmp_path / "owners.csv"
        path.write_text("Owner Name;Email\nJane Doe;jane@example.com\nTom;tom@example.com\n")
        df = CSVParser().parse_csv(str(path))
        assert list(df.columns) == ["Owner Name", "Email"]
        assert len(df) == 2

    def test_values_read_as_text(self, tmp_path):
        path = tmp_path / "charges.csv"
        path.write_text("Date,Amount\n2024-05-01,007\n")
        df = CSVParser().parse_csv(str(path))
        assert df.loc[0, "Amount"] == "007"


class TestOwnerResolver:
    @pytest.fixture
    def resolver(self):
        owners = [DogOwner(id="o1", owner_name="Jane Doe"), DogOwner(id="o2", owner_name="Carlos Rivera")]
        return OwnerResolver(owners, threshold=0.85)

    def test_exact_match_ignores_case_and_spacing(self, resolver):
        assert resolver.resolve("  JANE   doe ") == "o1"
        assert resolver.match("Jane Doe").match_type == "exact"

    def test_fuzzy_match(self, resolver):
        match = resolver.match("Carlos Riviera")
        assert match.owner_id == "o2"
        assert match.match_type == "fuzzy"
        assert match.confidence >= 0.85

    def test_unresolved(self, resolver):
        assert resolver.resolve("Someone Else") is None
        assert resolver.resolve("someone else") is None
        assert resolver.unresolved == {"someone else": 2}

    def test_empty_name(self, resolver):
        assert resolver.resolve(None) is None
        assert resolver.resolve("   ") is None


class TestDataLoader:
    def test_load_dataset(self, input_dir):
        dataset = DataLoader(AnalyticsConfig(input_dir=str(input_dir))).load()
        assert dataset.counts() == {'owners': 2, 'appointments': 3, 'charges': 3, 'behavior_logs': 2}

        jane = next(o for o in dataset.owners if o.owner_name == "Jane Doe")
        assert len(jane.appointments) == 2
        assert jane.last_appointment_date == datetime(2024, 5, 20, 10, 30)
        assert jane.appointments[1].service_type == ServiceType.BASIC_BATH
        assert jane.appointments[1].duration_minutes is None

        carlos = next(o for o in dataset.owners if o.owner_name == "Carlos Rivera")
        assert carlos.appointments[0].status == AppointmentStatus.NO_SHOW

    def test_charges_linked_to_appointments(self, input_dir):
        dataset = DataLoader(AnalyticsConfig(input_dir=str(input_dir))).load()
        by_id = {a.id: a for a in dataset.appointments}
        linked = [by_id[c.appointment_id].service_type for c in dataset.charges]
        assert linked == [ServiceType.FULL_GROOM, ServiceType.BASIC_BATH, ServiceType.NAIL_TRIM]
        assert dataset.charges[0].amount == 85.0

    def test_statistics_count_skipped_rows(self, input_dir):
        loader = DataLoader(AnalyticsConfig(input_dir=str(input_dir)))
        loader.load()
        assert loader.statistics['owners'] == {'rows': 3, 'loaded': 2, 'skipped': 1}
        assert loader.statistics['appointments']['skipped'] == 2
        assert loader.statistics['charges']['skipped'] == 1
        assert loader.statistics['behavior_logs']['skipped'] == 1
        assert 'nobody known' in loader.statistics['unresolved_owner_names']

    def test_missing_owners_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DataLoader(AnalyticsConfig(input_dir=str(tmp_path))).load()

    def test_missing_optional_files(self, tmp_path):
        (tmp_path / "owners.csv").write_text(OWNERS_CSV)
        dataset = DataLoader().load(str(tmp_path))
        assert dataset.counts() == {'owners': 2, 'appointments': 0, 'charges': 0, 'behavior_logs': 0}
