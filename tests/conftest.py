from datetime import date
from pathlib import Path

import pytest

from clinicbook import schemas
from clinicbook.config import Settings
from clinicbook.csvtable import CsvTable
from clinicbook.main import ClinicRecords

TODAY = date(2026, 3, 1)


def write_table(path: Path, records) -> None:
    record_type = type(records[0])
    CsvTable(path, record_type.column_names()).write_all(r.to_row() for r in records)


def seed(data_dir: Path) -> Settings:
    settings = Settings(data_dir=data_dir)
    write_table(
        settings.patients_path,
        [
            schemas.Patient(
                patient_id="P001",
                first_name="Ann",
                last_name="Hughes",
                nhs_number="NHS001",
                gp_surgery_id="S001",
            ),
            schemas.Patient(
                patient_id="P003",
                first_name="Tom",
                last_name="Baker",
                nhs_number="NHS003",
                gp_surgery_id="S001",
            ),
        ],
    )
    write_table(
        settings.clinicians_path,
        [
            schemas.Clinician(
                clinician_id="C001",
                title="Dr",
                first_name="Mina",
                last_name="Shah",
                speciality="General Practice",
                workplace_id="S001",
            ),
            schemas.Clinician(
                clinician_id="C002",
                title="Mr",
                first_name="Omar",
                last_name="Lane",
                speciality="Cardiology",
                workplace_id="H001",
            ),
        ],
    )
    write_table(
        settings.staff_path,
        [schemas.Staff(staff_id="ST001", first_name="Kay", last_name="Moss", facility_id="S001")],
    )
    write_table(
        settings.facilities_path,
        [
            schemas.Facility(facility_id="S001", facility_name="Park Surgery", facility_type="GP Surgery", capacity=40),
            schemas.Facility(facility_id="H001", facility_name="City Hospital", facility_type="Hospital", capacity=500),
            schemas.Facility(facility_id="H002", facility_name="Annex Clinic", facility_type="Clinic", capacity=10),
        ],
    )
    return settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return seed(tmp_path)


@pytest.fixture
def records(settings: Settings) -> ClinicRecords:
    return ClinicRecords(settings, today=lambda: TODAY)
