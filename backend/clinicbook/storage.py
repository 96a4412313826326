"""CSV-backed entity stores with sequential, human-readable identifiers."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Generic, Iterable, Optional, TypeVar

from . import schemas
from .csvtable import CsvTable
from .errors import StorageIOError

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=schemas.Record)


class EntityStore(Generic[RecordT]):
    """In-memory sequence of one record kind, mirrored to its CSV file.

    The file is read once at construction. Every mutation is written through
    before the call returns: additions append one line, updates and removals
    rewrite the whole file. Write failures are logged and the in-memory state
    is kept as is.
    """

    record_type: type[RecordT]
    id_prefix: Optional[str] = None
    id_width: int = 3

    def __init__(self, path: Path) -> None:
        self.table = CsvTable(path, self.record_type.column_names())
        self._records: list[RecordT] = []
        self.load_all()

    @property
    def kind(self) -> schemas.EntityKind:
        return self.record_type.kind

    def load_all(self) -> None:
        self._records = []
        if not self.table.exists():
            logger.info("No %s file at %s, starting empty", self.kind.value, self.table.path)
            return
        try:
            rows = self.table.read()
        except StorageIOError as error:
            logger.error("Failed to load %s records: %s", self.kind.value, error)
            return
        self._records = [self.record_type.from_row(row) for row in rows]
        logger.info("Loaded %d %s records", len(self._records), self.kind.value)

    def all(self) -> list[RecordT]:
        return list(self._records)

    def ids(self) -> list[str]:
        return [record.record_id for record in self._records]

    def find_by_id(self, record_id: str) -> Optional[RecordT]:
        return next(
            (record for record in self._records if record.record_id == record_id), None
        )

    def where(self, **criteria: str) -> list[RecordT]:
        return [
            record
            for record in self._records
            if all(getattr(record, field) == value for field, value in criteria.items())
        ]

    def generate_next_id(self) -> str:
        """Next identifier after the highest numeric suffix currently present.

        Not a persisted counter: gaps left by deletions are only reused when
        they sit above every remaining identifier.
        """
        if self.id_prefix is None:
            raise TypeError(f"{self.kind.value} identifiers are assigned externally")
        highest = 0
        for record_id in self.ids():
            if not record_id or not record_id.startswith(self.id_prefix):
                continue
            suffix = record_id[len(self.id_prefix):]
            if suffix.isascii() and suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{self.id_prefix}{highest + 1:0{self.id_width}d}"

    def add_and_persist(self, record: RecordT) -> RecordT:
        self._records.append(record)
        try:
            self.table.append_row(record.to_row())
        except StorageIOError as error:
            logger.error("Failed to append %s %s: %s", self.kind.value, record.record_id, error)
        else:
            logger.info("Added %s %s", self.kind.value, record.record_id)
        return record

    def update(self, record: RecordT) -> bool:
        index = self._index_of(record.record_id)
        if index is None:
            logger.warning("%s not found for update: %s", self.kind.value, record.record_id)
            return False
        self._records[index] = record
        self._persist()
        logger.info("Updated %s %s", self.kind.value, record.record_id)
        return True

    def remove(self, record: RecordT) -> bool:
        return self.remove_by_id(record.record_id)

    def remove_by_id(self, record_id: str) -> bool:
        index = self._index_of(record_id)
        if index is None:
            logger.warning("%s not found for removal: %s", self.kind.value, record_id)
            return False
        del self._records[index]
        self._persist()
        logger.info("Removed %s %s", self.kind.value, record_id)
        return True

    def _index_of(self, record_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.record_id == record_id:
                return index
        return None

    def _persist(self) -> None:
        try:
            self.table.write_all(record.to_row() for record in self._records)
        except StorageIOError as error:
            logger.error("Failed to rewrite %s file: %s", self.kind.value, error)


class PatientStore(EntityStore[schemas.Patient]):
    record_type = schemas.Patient
    id_prefix = "P"


class ClinicianStore(EntityStore[schemas.Clinician]):
    record_type = schemas.Clinician
    id_prefix = "C"


class StaffStore(EntityStore[schemas.Staff]):
    record_type = schemas.Staff
    id_prefix = "ST"


class FacilityStore(EntityStore[schemas.Facility]):
    """Facilities carry externally assigned identifiers."""

    record_type = schemas.Facility


class AppointmentStore(EntityStore[schemas.Appointment]):
    record_type = schemas.Appointment
    id_prefix = "A"


class PrescriptionStore(EntityStore[schemas.Prescription]):
    record_type = schemas.Prescription
    id_prefix = "RX"

    def medication_options(self) -> list[str]:
        return _distinct(record.medication_name for record in self._records)

    def pharmacy_options(self) -> list[str]:
        return _distinct(record.pharmacy_name for record in self._records)


class ReferralStore(EntityStore[schemas.Referral]):
    record_type = schemas.Referral
    id_prefix = "R"


def _distinct(values: Iterable[str]) -> list[str]:
    return sorted({value for value in values if value and value.strip()})
