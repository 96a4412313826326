import logging
import os
from dataclasses import dataclass
from pathlib import Path


# Default location of the CSV files and the referral journal.
DATA_DIR: str = os.environ.get("CLINICBOOK_DATA_DIR", "data")
JOURNAL_FILE: str = os.environ.get("CLINICBOOK_JOURNAL", "referrals_output.txt")
LOG_LEVEL: str = os.environ.get("CLINICBOOK_LOG_LEVEL", "INFO")

PATIENTS_FILE = "patients.csv"
CLINICIANS_FILE = "clinicians.csv"
STAFF_FILE = "staff.csv"
FACILITIES_FILE = "facilities.csv"
APPOINTMENTS_FILE = "appointments.csv"
PRESCRIPTIONS_FILE = "prescriptions.csv"
REFERRALS_FILE = "referrals.csv"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """File locations used to build the stores."""

    data_dir: Path
    journal_file: str = JOURNAL_FILE

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=Path(os.environ.get("CLINICBOOK_DATA_DIR", DATA_DIR)),
            journal_file=os.environ.get("CLINICBOOK_JOURNAL", JOURNAL_FILE),
        )

    @property
    def patients_path(self) -> Path:
        return self.data_dir / PATIENTS_FILE

    @property
    def clinicians_path(self) -> Path:
        return self.data_dir / CLINICIANS_FILE

    @property
    def staff_path(self) -> Path:
        return self.data_dir / STAFF_FILE

    @property
    def facilities_path(self) -> Path:
        return self.data_dir / FACILITIES_FILE

    @property
    def appointments_path(self) -> Path:
        return self.data_dir / APPOINTMENTS_FILE

    @property
    def prescriptions_path(self) -> Path:
        return self.data_dir / PRESCRIPTIONS_FILE

    @property
    def referrals_path(self) -> Path:
        return self.data_dir / REFERRALS_FILE

    @property
    def journal_path(self) -> Path:
        return self.data_dir / self.journal_file


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Basic console logging for hosts that do not configure their own."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
