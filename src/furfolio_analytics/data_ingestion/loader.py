"""
Loads Furfolio CSV exports into domain models.
"""
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
from loguru import logger
from pydantic import ValidationError

from furfolio_analytics.config import AnalyticsConfig
from furfolio_analytics.data_ingestion.parsers import CSVParser
from furfolio_analytics.data_ingestion.resolver import OwnerResolver
from furfolio_analytics.models import (
    Appointment,
    AppointmentStatus,
    Charge,
    DogOwner,
    PetBehaviorLog,
    ServiceType
)
from furfolio_analytics.utils import clean_column_names, standardize_datetime

_STATUS_ALIASES = {
    'canceled': AppointmentStatus.CANCELLED,
    'noshow': AppointmentStatus.NO_SHOW,
    'done': AppointmentStatus.COMPLETED,
}


def _label_key(label: Any) -> str:
    return str(label).strip().lower().replace('-', '_').replace(' ', '_')


def parse_service_type(label: Any) -> ServiceType:
    """Map a service label (display name or raw value) to a ServiceType, custom when unknown."""
    if label is None or (isinstance(label, float) and pd.isna(label)):
        return ServiceType.CUSTOM
    key = _label_key(label)
    for service in ServiceType:
        if key == service.value or key == _label_key(service.display_name):
            return service
    return ServiceType.CUSTOM


def parse_status(label: Any) -> AppointmentStatus:
    """Map a status label to an AppointmentStatus, scheduled when unknown."""
    if label is None or (isinstance(label, float) and pd.isna(label)):
        return AppointmentStatus.SCHEDULED
    key = _label_key(label)
    for status in AppointmentStatus:
        if key == status.value:
            return status
    return _STATUS_ALIASES.get(key.replace('_', ''), AppointmentStatus.SCHEDULED)


def _text(row: Dict[str, Any], *columns: str) -> Optional[str]:
    for column in columns:
        value = row.get(column)
        if value is not None and not (isinstance(value, float) and pd.isna(value)):
            text = str(value).strip()
            if text:
                return text
    return None


def _row_datetime(row: Dict[str, Any]) -> Optional[datetime]:
    day = _text(row, 'date', 'date_logged')
    if day is None:
        return None
    time = _text(row, 'time')
    return standardize_datetime(f"{day} {time}" if time else day)


class AnalyticsDataset:
    """Domain records loaded from one input directory."""

    def __init__(self,
                 owners: List[DogOwner],
                 appointments: List[Appointment],
                 charges: List[Charge],
                 behavior_logs: List[PetBehaviorLog],
                 statistics: Dict[str, Dict[str, int]]):
        self.owners = owners
        self.appointments = appointments
        self.charges = charges
        self.behavior_logs = behavior_logs
        self.statistics = statistics

    def counts(self) -> Dict[str, int]:
        return {
            'owners': len(self.owners),
            'appointments': len(self.appointments),
            'charges': len(self.charges),
            'behavior_logs': len(self.behavior_logs)
        }


class DataLoader:
    """
    Reads owners, appointments, charges and behavior logs from CSV exports.

    Rows that cannot be parsed or whose owner cannot be resolved are skipped
    with a warning and counted in ``statistics``.
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None, parser: Optional[CSVParser] = None):
        self.config = config or AnalyticsConfig()
        self.parser = parser or CSVParser()
        self.statistics: Dict[str, Dict[str, int]] = {}

    def _path(self, input_dir: str, file_name: str) -> str:
        return os.path.join(input_dir, file_name)

    def _read(self, path: str, required: bool = False) -> List[Dict[str, Any]]:
        """Read a CSV file into row dictionaries with cleaned column names."""
        if not os.path.isfile(path):
            if required:
                raise FileNotFoundError(f"Required input file not found: {path}")
            logger.warning(f"Input file {path} not found, treating it as empty")
            return []

        df = self.parser.parse_csv(path)
        df.columns = clean_column_names(list(df.columns))
        df = df.dropna(how='all')
        return df.to_dict(orient='records')

    def _track(self, name: str, read: int, loaded: int) -> None:
        self.statistics[name] = {'rows': read, 'loaded': loaded, 'skipped': read - loaded}
        if read - loaded:
            logger.warning(f"Skipped {read - loaded} of {read} rows in {name}")
        logger.info(f"Loaded {loaded} {name}")

    def load_owners(self, path: str) -> List[DogOwner]:
        rows = self._read(path, required=True)
        owners = []
        for index, row in enumerate(rows):
            name = _text(row, 'owner_name', 'name', 'owner')
            if name is None:
                logger.warning(f"Skipping owner row {index + 1}: missing owner name")
                continue
            fields = {
                'owner_name': name,
                'email': _text(row, 'email'),
                'phone': _text(row, 'phone'),
                'address': _text(row, 'address')
            }
            owner_id = _text(row, 'owner_id', 'id')
            if owner_id:
                fields['id'] = owner_id
            created_at = standardize_datetime(_text(row, 'created_at'))
            if created_at:
                fields['created_at'] = created_at
            owners.append(DogOwner(**fields))
        self._track('owners', len(rows), len(owners))
        return owners

    def load_appointments(self, path: str, resolver: OwnerResolver) -> List[Appointment]:
        rows = self._read(path)
        appointments = []
        for index, row in enumerate(rows):
            date = _row_datetime(row)
            owner_id = resolver.resolve(_text(row, 'owner', 'owner_name'))
            if date is None or owner_id is None:
                logger.warning(f"Skipping appointment row {index + 1}: missing date or unknown owner")
                continue

            duration = _text(row, 'duration', 'duration_minutes')
            fields = {
                'owner_id': owner_id,
                'dog_id': _text(row, 'dog', 'dog_id'),
                'date': date,
                'service_type': parse_service_type(_text(row, 'service', 'service_type')),
                'status': parse_status(_text(row, 'status')),
                'notes': _text(row, 'notes')
            }
            appointment_id = _text(row, 'appointment_id', 'id')
            if appointment_id:
                fields['id'] = appointment_id
            try:
                fields['duration_minutes'] = int(float(duration)) if duration else None
                appointments.append(Appointment(**fields))
            except (ValueError, ValidationError) as e:
                logger.warning(f"Skipping appointment row {index + 1}: {e}")
        self._track('appointments', len(rows), len(appointments))
        return appointments

    @staticmethod
    def _link_appointment(charge_date: datetime,
                          owner_id: str,
                          service: ServiceType,
                          by_owner_day: Dict[tuple, List[Appointment]]) -> Optional[str]:
        candidates = by_owner_day.get((owner_id, charge_date.date()), [])
        for appointment in candidates:
            if appointment.service_type == service:
                return appointment.id
        return candidates[0].id if candidates else None

    def load_charges(self, path: str, resolver: OwnerResolver,
                     appointments: List[Appointment]) -> List[Charge]:
        rows = self._read(path)
        known_ids = {a.id for a in appointments}
        by_owner_day: Dict[tuple, List[Appointment]] = {}
        for appointment in appointments:
            by_owner_day.setdefault((appointment.owner_id, appointment.date.date()), []).append(appointment)

        charges = []
        for index, row in enumerate(rows):
            date = _row_datetime(row)
            owner_id = resolver.resolve(_text(row, 'owner', 'owner_name'))
            amount = _text(row, 'amount')
            if date is None or owner_id is None or amount is None:
                logger.warning(f"Skipping charge row {index + 1}: missing date, amount or unknown owner")
                continue
            try:
                value = float(amount.replace('$', '').replace(',', ''))
            except ValueError:
                logger.warning(f"Skipping charge row {index + 1}: invalid amount '{amount}'")
                continue

            service = parse_service_type(_text(row, 'type', 'service', 'service_type'))
            appointment_id = _text(row, 'appointment_id')
            if appointment_id not in known_ids:
                appointment_id = self._link_appointment(date, owner_id, service, by_owner_day)

            charges.append(Charge(
                date=date,
                amount=value,
                service_type=service,
                appointment_id=appointment_id,
                owner_id=owner_id,
                notes=_text(row, 'notes')
            ))
        self._track('charges', len(rows), len(charges))
        return charges

    def load_behavior_logs(self, path: str, resolver: OwnerResolver) -> List[PetBehaviorLog]:
        rows = self._read(path)
        logs = []
        for index, row in enumerate(rows):
            date = _row_datetime(row)
            note = _text(row, 'note', 'notes', 'behavior')
            if date is None or note is None:
                logger.warning(f"Skipping behavior log row {index + 1}: missing date or note")
                continue
            owner_name = _text(row, 'owner', 'owner_name')
            logs.append(PetBehaviorLog(
                note=note,
                date_logged=date,
                dog_id=_text(row, 'dog', 'dog_id'),
                owner_id=resolver.resolve(owner_name) if owner_name else None,
                appointment_id=_text(row, 'appointment_id')
            ))
        self._track('behavior_logs', len(rows), len(logs))
        return logs

    def load(self, input_dir: Optional[str] = None) -> AnalyticsDataset:
        """
        Load every input file from ``input_dir``.

        Args:
            input_dir: Directory with the CSV exports, defaults to the configured one

        Returns:
            AnalyticsDataset with owners carrying their appointments

        Raises:
            FileNotFoundError: If the owners file is missing
        """
        input_dir = input_dir or self.config.input_dir
        files = self.config.input
        logger.info(f"Loading Furfolio exports from {input_dir}")

        owners = self.load_owners(self._path(input_dir, files.owners_file))
        resolver = OwnerResolver(owners, threshold=files.owner_match_threshold)

        appointments = self.load_appointments(self._path(input_dir, files.appointments_file), resolver)
        charges = self.load_charges(self._path(input_dir, files.charges_file), resolver, appointments)
        behavior_logs = self.load_behavior_logs(self._path(input_dir, files.behavior_logs_file), resolver)

        by_owner: Dict[str, List[Appointment]] = {}
        for appointment in appointments:
            by_owner.setdefault(appointment.owner_id, []).append(appointment)
        owners = [owner.model_copy(update={'appointments': by_owner.get(owner.id, [])}) for owner in owners]

        if resolver.unresolved:
            self.statistics['unresolved_owner_names'] = dict(resolver.unresolved)

        return AnalyticsDataset(owners, appointments, charges, behavior_logs, self.statistics)
