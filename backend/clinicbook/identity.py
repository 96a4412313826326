"""Login credentials aggregated from the patient, clinician and staff stores."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from .access import Actor
from .schemas import Record, Role
from .storage import ClinicianStore, PatientStore, StaffStore

logger = logging.getLogger(__name__)

ADMIN_USER_ID = "admin"
ADMIN_PASSWORD = "admin123"


@dataclass
class Credential:
    """One login entry. The password is the identifier itself."""

    user_id: str
    password: str
    role: Role
    record: Optional[Record] = None

    def matches(self, password: str) -> bool:
        return secrets.compare_digest(
            self.password.encode("utf-8"), password.encode("utf-8")
        )

    def actor(self) -> Actor:
        return Actor(role=self.role, actor_id=self.user_id)


class LoginDirectory:
    """Answers authentication queries against the identity stores.

    Credentials are rebuilt from the live stores on every query, so an
    identity added after start-up can log in straight away and a removed one
    no longer can.
    """

    def __init__(
        self, patients: PatientStore, clinicians: ClinicianStore, staff: StaffStore
    ) -> None:
        self.patients = patients
        self.clinicians = clinicians
        self.staff = staff

    def credentials(self) -> list[Credential]:
        entries: list[Credential] = []
        for role, store in (
            (Role.patient, self.patients),
            (Role.clinician, self.clinicians),
            (Role.staff, self.staff),
        ):
            for record in store.all():
                entries.append(
                    Credential(record.record_id, record.record_id, role, record)
                )
        entries.append(Credential(ADMIN_USER_ID, ADMIN_PASSWORD, Role.admin))
        return entries

    def authenticate(self, user_id: str, password: str) -> Optional[Credential]:
        for credential in self.credentials():
            if credential.user_id == user_id and credential.matches(password):
                logger.info("Login succeeded for %s (%s)", user_id, credential.role.value)
                return credential
        logger.warning("Login failed for %s", user_id)
        return None

    def user_ids(self) -> list[str]:
        return [
            f"{credential.user_id} ({credential.role.value})"
            for credential in self.credentials()
        ]
