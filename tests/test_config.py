import logging
from pathlib import Path

from clinicbook import config
from clinicbook.config import Settings


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CLINICBOOK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CLINICBOOK_JOURNAL", "journal.txt")

    settings = Settings.from_env()

    assert settings.data_dir == tmp_path
    assert settings.journal_path == tmp_path / "journal.txt"
    assert settings.referrals_path == tmp_path / "referrals.csv"


def test_default_file_names():
    settings = Settings(data_dir=Path("data"))

    assert settings.patients_path == Path("data/patients.csv")
    assert settings.staff_path == Path("data/staff.csv")
    assert settings.journal_path == Path("data") / config.JOURNAL_FILE


def test_configure_logging_accepts_lowercase_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    config.configure_logging("debug")

    assert calls == {"level": "DEBUG", "format": config.LOG_FORMAT}
