"""Application wiring and the actor-bound operations used by the desktop UI."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from . import schemas
from .access import AccessScope, Action, Actor
from .audit import ReferralAuditLog
from .config import Settings
from .errors import ReferencedRecordError, ValidationFailure
from .identity import LoginDirectory
from .schemas import EntityKind, Record, Role
from .storage import (
    AppointmentStore,
    ClinicianStore,
    EntityStore,
    FacilityStore,
    PatientStore,
    PrescriptionStore,
    ReferralStore,
    StaffStore,
)

logger = logging.getLogger(__name__)

Payload = Union[Record, Mapping[str, Any]]

# Fields on other kinds that point at a record of the key kind. Deleting a
# record that is still referenced is blocked; nothing cascades.
REFERENCES: dict[EntityKind, tuple[tuple[EntityKind, str], ...]] = {
    EntityKind.patient: (
        (EntityKind.appointment, "patient_id"),
        (EntityKind.prescription, "patient_id"),
        (EntityKind.referral, "patient_id"),
    ),
    EntityKind.clinician: (
        (EntityKind.appointment, "clinician_id"),
        (EntityKind.prescription, "clinician_id"),
        (EntityKind.referral, "referring_clinician_id"),
        (EntityKind.referral, "referred_to_clinician_id"),
    ),
    EntityKind.facility: (
        (EntityKind.patient, "gp_surgery_id"),
        (EntityKind.clinician, "workplace_id"),
        (EntityKind.staff, "facility_id"),
        (EntityKind.appointment, "facility_id"),
        (EntityKind.referral, "referring_facility_id"),
        (EntityKind.referral, "referred_to_facility_id"),
    ),
    EntityKind.appointment: (
        (EntityKind.prescription, "appointment_id"),
        (EntityKind.referral, "appointment_id"),
    ),
}

# (created, modified) date fields: both filled on create when empty, the
# second restamped on every update.
TIMESTAMP_FIELDS: dict[EntityKind, tuple[str, str]] = {
    EntityKind.appointment: ("created_date", "last_modified"),
    EntityKind.referral: ("created_date", "last_updated"),
}

# The only prescription fields a patient may change on their own record.
PATIENT_PRESCRIPTION_FIELDS = ("status", "collection_date")


class ClinicRecords:
    """Owns every store, the login directory and the referral journal.

    Built once at start-up; stores are never reloaded until restart.
    """

    def __init__(self, settings: Settings, *, today: Callable[[], date] = date.today) -> None:
        self.settings = settings
        self.today = today
        self.patients = PatientStore(settings.patients_path)
        self.clinicians = ClinicianStore(settings.clinicians_path)
        self.staff = StaffStore(settings.staff_path)
        self.facilities = FacilityStore(settings.facilities_path)
        self.appointments = AppointmentStore(settings.appointments_path)
        self.prescriptions = PrescriptionStore(settings.prescriptions_path)
        self.referrals = ReferralStore(settings.referrals_path)
        self.logins = LoginDirectory(self.patients, self.clinicians, self.staff)
        self.referral_log = ReferralAuditLog(
            settings.journal_path,
            self.patients,
            self.clinicians,
            self.facilities,
            today=today,
        )
        self._stores: dict[EntityKind, EntityStore] = {
            EntityKind.patient: self.patients,
            EntityKind.clinician: self.clinicians,
            EntityKind.staff: self.staff,
            EntityKind.facility: self.facilities,
            EntityKind.appointment: self.appointments,
            EntityKind.prescription: self.prescriptions,
            EntityKind.referral: self.referrals,
        }

    @classmethod
    def from_env(cls) -> "ClinicRecords":
        return cls(Settings.from_env())

    def store(self, kind: EntityKind) -> EntityStore:
        return self._stores[EntityKind(kind)]

    def patients_in_care(self, clinician_id: str) -> list[str]:
        """Patients with at least one appointment with the clinician."""
        seen: dict[str, None] = {}
        for appointment in self.appointments.where(clinician_id=clinician_id):
            seen.setdefault(appointment.patient_id, None)
        return list(seen)

    def dependents_of(self, kind: EntityKind, record_id: str) -> list[str]:
        dependents = []
        for dependent_kind, field in REFERENCES.get(kind, ()):
            for record in self.store(dependent_kind).where(**{field: record_id}):
                if record.record_id not in dependents:
                    dependents.append(record.record_id)
        return dependents

    def scope_for(self, actor: Actor) -> AccessScope:
        return AccessScope(actor, care_relation=self.patients_in_care, today=self.today)

    def session(self, actor: Actor) -> "RecordService":
        return RecordService(self, actor)

    def login(self, user_id: str, password: str) -> Optional["RecordService"]:
        credential = self.logins.authenticate(user_id, password)
        if credential is None:
            return None
        return self.session(credential.actor())


class RecordService:
    """Operations one actor performs; every mutation is authorised first."""

    def __init__(self, records: ClinicRecords, actor: Actor) -> None:
        self.records = records
        self.actor = actor
        self.scope = records.scope_for(actor)

    def list_records(self, kind: EntityKind) -> list[Record]:
        return self.scope.visible(self.records.store(kind))

    def get(self, kind: EntityKind, record_id: str) -> Optional[Record]:
        record = self.records.store(kind).find_by_id(record_id)
        if record is None or not self.scope.can_view(record):
            return None
        return record

    def next_id(self, kind: EntityKind) -> str:
        return self.records.store(kind).generate_next_id()

    def create(self, kind: EntityKind, payload: Payload) -> Record:
        kind = EntityKind(kind)
        store = self.records.store(kind)
        data = _as_dict(payload)
        id_field = store.record_type.id_field
        if not data.get(id_field) and store.id_prefix is not None:
            data[id_field] = store.generate_next_id()
        stamps = TIMESTAMP_FIELDS.get(kind)
        if stamps:
            today = self.records.today().isoformat()
            for field in stamps:
                if not data.get(field):
                    data[field] = today
        record = _validate(kind, data)
        self.scope.authorize(Action.create, record)
        store.add_and_persist(record)
        if kind is EntityKind.referral:
            self.records.referral_log.record_created(record)
        return record

    def update(self, kind: EntityKind, payload: Payload) -> Optional[Record]:
        kind = EntityKind(kind)
        store = self.records.store(kind)
        changes = _as_dict(payload)
        record_id = changes.get(store.record_type.id_field, "")
        current = store.find_by_id(record_id)
        if current is None:
            logger.warning("%s not found for update: %s", kind.value, record_id)
            return None
        if kind is EntityKind.prescription and self.actor.role is Role.patient:
            changes = {
                field: changes[field] for field in PATIENT_PRESCRIPTION_FIELDS if field in changes
            }
        stamps = TIMESTAMP_FIELDS.get(kind)
        if stamps:
            changes[stamps[1]] = self.records.today().isoformat()
        proposed = _validate_changes(kind, current, changes)
        self.scope.authorize(Action.update, current, proposed)
        store.update(proposed)
        if kind is EntityKind.referral:
            self.records.referral_log.record_updated(proposed)
        return proposed

    def delete(self, kind: EntityKind, record_id: str) -> bool:
        kind = EntityKind(kind)
        store = self.records.store(kind)
        current = store.find_by_id(record_id)
        if current is None:
            logger.warning("%s not found for deletion: %s", kind.value, record_id)
            return False
        self.scope.authorize(Action.delete, current)
        dependents = self.records.dependents_of(kind, record_id)
        if dependents:
            raise ReferencedRecordError(kind.value, record_id, dependents)
        removed = store.remove_by_id(record_id)
        if removed and kind is EntityKind.referral:
            self.records.referral_log.record_deleted(current)
        return removed

    def create_referral(self, payload: Payload) -> schemas.Referral:
        return self.create(EntityKind.referral, payload)

    def update_referral(self, payload: Payload) -> Optional[schemas.Referral]:
        return self.update(EntityKind.referral, payload)

    def delete_referral(self, referral_id: str) -> bool:
        return self.delete(EntityKind.referral, referral_id)

    def medication_options(self) -> list[str]:
        return self.records.prescriptions.medication_options()

    def pharmacy_options(self) -> list[str]:
        return self.records.prescriptions.pharmacy_options()

    def medication_history(self, patient_id: str) -> list[str]:
        return [
            f"{prescription.medication_name} - {prescription.dosage} ({prescription.prescription_date})"
            for prescription in self.list_records(EntityKind.prescription)
            if prescription.patient_id == patient_id
        ]

    def patients_for_clinician(self, clinician_id: str) -> list[schemas.Patient]:
        patients = []
        for patient_id in self.records.patients_in_care(clinician_id):
            patient = self.get(EntityKind.patient, patient_id)
            if patient is not None:
                patients.append(patient)
        return patients


def _as_dict(payload: Payload) -> dict[str, Any]:
    if isinstance(payload, Record):
        return payload.model_dump()
    return dict(payload)


def _validate(kind: EntityKind, data: Mapping[str, Any]) -> Record:
    record_type = schemas.RECORD_TYPES[kind]
    try:
        return record_type.model_validate(data)
    except ValidationError as error:
        raise ValidationFailure.from_pydantic(kind.value, error) from error


def _validate_changes(kind: EntityKind, current: Record, changes: Mapping[str, Any]) -> Record:
    """Validate ``changes`` applied over ``current``.

    Stored values that fail validation but are not being changed are carried
    over as loaded, so a legacy row can still be edited field by field.
    """
    record_type = schemas.RECORD_TYPES[kind]
    data = {**current.model_dump(), **changes}
    try:
        return record_type.model_validate(data)
    except ValidationError as error:
        errors = error.errors(include_url=False)
        stale = {err["loc"][0] for err in errors if err["loc"]}
        if stale & set(changes) or not stale:
            raise ValidationFailure.from_pydantic(kind.value, error) from error
    checked = _validate(kind, {name: value for name, value in data.items() if name not in stale})
    return checked.model_copy(update={name: data[name] for name in stale})
