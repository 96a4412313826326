"""Pydantic record models for the clinical records stores."""
from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import ClassVar, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Roles an authenticated actor can hold."""

    patient = "patient"
    clinician = "clinician"
    staff = "staff"
    admin = "admin"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Role"]:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class EntityKind(str, Enum):
    """Record kinds kept by the core, one CSV file each."""

    patient = "patient"
    clinician = "clinician"
    staff = "staff"
    facility = "facility"
    appointment = "appointment"
    prescription = "prescription"
    referral = "referral"


def parse_date(value: str) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string, ``None`` when it does not parse."""
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None


def _whole_number(value: str) -> str:
    if value and not value.isdigit():
        raise ValueError("must be a whole number")
    return value


def _iso_date(value: str) -> str:
    if value and parse_date(value) is None:
        raise ValueError("must be a date in YYYY-MM-DD format")
    return value


class Record(BaseModel):
    """Flat record backed by one CSV row.

    Field declaration order is the column order of the backing file, so the
    header and every row are derived from ``model_fields``.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    kind: ClassVar[EntityKind]
    id_field: ClassVar[str]

    @classmethod
    def column_names(cls) -> tuple[str, ...]:
        return tuple(cls.model_fields)

    @property
    def record_id(self) -> str:
        return getattr(self, self.id_field)

    def to_row(self) -> list[str]:
        return [str(getattr(self, name)) for name in self.column_names()]

    @classmethod
    def from_row(cls, row: Sequence[str]):
        """Build a record from stored values without validating them.

        Short rows are padded with empty strings and surplus cells dropped, so
        one malformed line never fails a whole load.
        """
        names = cls.column_names()
        if len(row) != len(names):
            logger.warning(
                "%s row has %d columns, expected %d", cls.kind.value, len(row), len(names)
            )
        values = list(row[: len(names)]) + [""] * (len(names) - len(row))
        return cls.model_construct(**dict(zip(names, values)))


class Patient(Record):
    kind: ClassVar[EntityKind] = EntityKind.patient
    id_field: ClassVar[str] = "patient_id"

    patient_id: str
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    nhs_number: str = ""
    gender: str = ""
    phone_number: str = ""
    email: str = ""
    address: str = ""
    postcode: str = ""
    emergency_contact_name: str = ""
    emergency_contact_phone: str = ""
    registration_date: str = ""
    gp_surgery_id: str = Field("", description="Registered facility")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Clinician(Record):
    kind: ClassVar[EntityKind] = EntityKind.clinician
    id_field: ClassVar[str] = "clinician_id"

    clinician_id: str
    title: str = ""
    first_name: str = ""
    last_name: str = ""
    speciality: str = ""
    gmc_number: str = Field("", description="Professional registration number")
    phone_number: str = ""
    email: str = ""
    workplace_id: str = ""
    workplace_type: str = ""
    employment_status: str = ""
    start_date: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Staff(Record):
    kind: ClassVar[EntityKind] = EntityKind.staff
    id_field: ClassVar[str] = "staff_id"

    staff_id: str
    first_name: str = ""
    last_name: str = ""
    role: str = ""
    department: str = ""
    facility_id: str = ""
    phone_number: str = ""
    email: str = ""
    employment_status: str = ""
    start_date: str = ""
    line_manager: str = ""
    access_level: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Facility(Record):
    kind: ClassVar[EntityKind] = EntityKind.facility
    id_field: ClassVar[str] = "facility_id"

    facility_id: str
    facility_name: str = ""
    facility_type: str = ""
    address: str = ""
    postcode: str = ""
    phone_number: str = ""
    email: str = ""
    opening_hours: str = ""
    manager_name: str = ""
    capacity: int = Field(0, ge=0)
    specialities_offered: str = ""

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "Facility":
        facility = super().from_row(row)
        raw = str(facility.capacity).strip()
        try:
            facility.capacity = int(raw)
        except ValueError:
            logger.warning("Invalid capacity %r for facility %s", raw, facility.facility_id)
            facility.capacity = 0
        return facility


class Appointment(Record):
    kind: ClassVar[EntityKind] = EntityKind.appointment
    id_field: ClassVar[str] = "appointment_id"

    appointment_id: str
    patient_id: str = ""
    clinician_id: str = ""
    facility_id: str = ""
    appointment_date: str = ""
    appointment_time: str = ""
    duration_minutes: str = ""
    appointment_type: str = ""
    status: str = ""
    reason_for_visit: str = ""
    notes: str = ""
    created_date: str = ""
    last_modified: str = ""

    @field_validator("duration_minutes")
    @classmethod
    def check_duration(cls, value: str) -> str:
        return _whole_number(value)

    @field_validator("appointment_date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _iso_date(value)


class Prescription(Record):
    kind: ClassVar[EntityKind] = EntityKind.prescription
    id_field: ClassVar[str] = "prescription_id"

    prescription_id: str
    patient_id: str = ""
    clinician_id: str = ""
    appointment_id: str = ""
    prescription_date: str = ""
    medication_name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration_days: str = ""
    quantity: str = ""
    instructions: str = ""
    pharmacy_name: str = ""
    status: str = ""
    issue_date: str = ""
    collection_date: str = ""

    @field_validator("duration_days", "quantity")
    @classmethod
    def check_counts(cls, value: str) -> str:
        return _whole_number(value)

    @field_validator("prescription_date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _iso_date(value)


class Referral(Record):
    kind: ClassVar[EntityKind] = EntityKind.referral
    id_field: ClassVar[str] = "referral_id"

    referral_id: str
    patient_id: str = ""
    referring_clinician_id: str = ""
    referred_to_clinician_id: str = ""
    referring_facility_id: str = ""
    referred_to_facility_id: str = ""
    referral_date: str = ""
    urgency_level: str = ""
    referral_reason: str = ""
    clinical_summary: str = ""
    requested_investigations: str = Field("", description="Requested service")
    status: str = ""
    appointment_id: str = ""
    notes: str = ""
    created_date: str = ""
    last_updated: str = ""

    @field_validator("referral_date")
    @classmethod
    def check_date(cls, value: str) -> str:
        return _iso_date(value)


RECORD_TYPES: dict[EntityKind, type[Record]] = {
    record_type.kind: record_type
    for record_type in (
        Patient,
        Clinician,
        Staff,
        Facility,
        Appointment,
        Prescription,
        Referral,
    )
}
