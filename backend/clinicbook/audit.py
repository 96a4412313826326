"""Append-only narrative journal of referral lifecycle events."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable

from . import schemas
from .csvtable import _ensure_directory
from .storage import ClinicianStore, FacilityStore, PatientStore

logger = logging.getLogger(__name__)

BANNER = "=" * 46
SEPARATOR = "-" * 46


def _title(text: str) -> str:
    return text.center(len(BANNER)).rstrip()


@dataclass
class ReferralAuditLog:
    """Human-readable referral journal.

    Entries are never parsed back; the referral store stays the source of
    truth. Each entry sits between a banner and a separator line so the file
    remains greppable.
    """

    journal_path: Path
    patients: PatientStore
    clinicians: ClinicianStore
    facilities: FacilityStore
    today: Callable[[], date] = date.today

    def record_created(self, referral: schemas.Referral) -> None:
        self._append(self._summary("REFERRAL SUMMARY REPORT", referral))

    def record_updated(self, referral: schemas.Referral) -> None:
        self._append(self._summary("REFERRAL UPDATED", referral))

    def record_deleted(self, referral: schemas.Referral) -> None:
        self._append(
            [
                BANNER,
                _title("REFERRAL DELETED / CANCELLED"),
                BANNER,
                f"Referral ID: {referral.referral_id}",
                f"Patient ID: {referral.patient_id}",
                f"Reason for Referral: {referral.referral_reason}",
                f"Deleted Date: {self.today().isoformat()}",
            ]
        )

    def _summary(self, title: str, referral: schemas.Referral) -> list[str]:
        lines = [BANNER, _title(title), BANNER, f"Referral ID: {referral.referral_id}"]

        patient = self.patients.find_by_id(referral.patient_id)
        if patient is not None:
            lines.append(f"Patient: {patient.full_name} (NHS: {patient.nhs_number})")

        for label, clinician_id in (
            ("Referring Clinician", referral.referring_clinician_id),
            ("Referred To", referral.referred_to_clinician_id),
        ):
            clinician = self.clinicians.find_by_id(clinician_id)
            if clinician is not None:
                lines.append(
                    f"{label}: {clinician.full_name} ({clinician.title} - {clinician.speciality})"
                )

        for label, facility_id in (
            ("Referring Facility", referral.referring_facility_id),
            ("Referred To Facility", referral.referred_to_facility_id),
        ):
            facility = self.facilities.find_by_id(facility_id)
            if facility is not None:
                lines.append(f"{label}: {facility.facility_name} ({facility.facility_type})")

        lines.extend(
            [
                f"Referral Date: {referral.referral_date}",
                f"Urgency Level: {referral.urgency_level}",
                f"Reason for Referral: {referral.referral_reason}",
                f"Requested Service: {referral.requested_investigations}",
                f"Status: {referral.status}",
                "Clinical Summary:",
                referral.clinical_summary,
                "Notes:",
                referral.notes,
                f"Created Date: {referral.created_date}",
                f"Last Updated: {referral.last_updated}",
            ]
        )
        return lines

    def _append(self, lines: list[str]) -> None:
        try:
            _ensure_directory(self.journal_path.parent)
            with self.journal_path.open("a", encoding="utf-8") as handle:
                for line in lines + [SEPARATOR, ""]:
                    handle.write(line)
                    handle.write("\n")
        except OSError as error:
            logger.error("Failed to write referral journal %s: %s", self.journal_path, error)
