import logging

from clinicbook import schemas
from clinicbook.audit import BANNER, SEPARATOR, ReferralAuditLog


def _referral(**overrides):
    values = dict(
        referral_id="R001",
        patient_id="P001",
        referring_clinician_id="C001",
        referred_to_clinician_id="C002",
        referring_facility_id="S001",
        referred_to_facility_id="H001",
        referral_date="2026-03-04",
        urgency_level="Urgent",
        referral_reason="Chest pain",
        clinical_summary="Intermittent pain on exertion",
        requested_investigations="ECG",
        status="New",
        notes="Call before visit",
        created_date="2026-03-01",
        last_updated="2026-03-01",
    )
    values.update(overrides)
    return schemas.Referral(**values)


def test_created_block_resolves_names(records):
    log = records.referral_log

    log.record_created(_referral())

    lines = log.journal_path.read_text().splitlines()
    assert lines[0] == BANNER
    assert lines[1].strip() == "REFERRAL SUMMARY REPORT"
    assert lines[2] == BANNER
    assert "Referral ID: R001" in lines
    assert "Patient: Ann Hughes (NHS: NHS001)" in lines
    assert "Referring Clinician: Mina Shah (Dr - General Practice)" in lines
    assert "Referred To: Omar Lane (Mr - Cardiology)" in lines
    assert "Referring Facility: Park Surgery (GP Surgery)" in lines
    assert "Referred To Facility: City Hospital (Hospital)" in lines
    assert "Urgency Level: Urgent" in lines
    assert "Requested Service: ECG" in lines
    summary_at = lines.index("Clinical Summary:")
    assert lines[summary_at + 1] == "Intermittent pain on exertion"
    assert lines[-2] == SEPARATOR
    assert lines[-1] == ""


def test_unresolved_references_are_left_out(records):
    log = records.referral_log

    log.record_created(_referral(patient_id="P404", referred_to_clinician_id="C404", referred_to_facility_id=""))

    text = log.journal_path.read_text()
    assert "Patient:" not in text
    assert "Referred To:" not in text
    assert "Referred To Facility:" not in text
    assert "Referring Clinician: Mina Shah" in text


def test_deleted_block(records):
    log = records.referral_log

    log.record_deleted(_referral())

    lines = log.journal_path.read_text().splitlines()
    assert lines[1].strip() == "REFERRAL DELETED / CANCELLED"
    assert lines[3:7] == [
        "Referral ID: R001",
        "Patient ID: P001",
        "Reason for Referral: Chest pain",
        "Deleted Date: 2026-03-01",
    ]


def test_entries_accumulate(records):
    log = records.referral_log

    log.record_created(_referral())
    log.record_updated(_referral(status="Accepted"))
    log.record_deleted(_referral())

    text = log.journal_path.read_text()
    assert text.count(SEPARATOR) == 3
    assert "REFERRAL UPDATED" in text
    assert "Status: Accepted" in text


def test_journal_write_failure_is_logged_not_raised(records, tmp_path, caplog):
    blocked = tmp_path / "journal"
    blocked.mkdir()
    log = ReferralAuditLog(blocked, records.patients, records.clinicians, records.facilities)

    with caplog.at_level(logging.ERROR):
        log.record_created(_referral())

    assert "Failed to write referral journal" in caplog.text
