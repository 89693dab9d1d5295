import uuid
from datetime import date, time
from decimal import Decimal

import pytest

from qsolog.models import QSO, Mode, QsoDraft


class MemoryRepository:
    """In-memory stand-in for qsolog.storage, used by the workflow tests."""

    def __init__(self):
        self.rows = {}
        self.saves = 0

    def _owned(self, owner_id):
        return [q for q in self.rows.values() if q.owner_id == owner_id]

    def find_qsos(self, owner_id, callsign=None, band=None, date_from=None, date_to=None,
                  limit=20, offset=0):
        rows = [
            q for q in self._owned(owner_id)
            if (not callsign or callsign.upper() in q.callsign.upper())
            and (not band or q.band == band)
            and (not date_from or q.qso_date >= date_from)
            and (not date_to or q.qso_date <= date_to)
        ]
        rows.sort(key=lambda q: (q.qso_date, q.time_on), reverse=True)
        return rows[offset:offset + limit]

    def iter_qsos_for_export(self, owner_id, date_from=None, date_to=None):
        rows = [
            q for q in self._owned(owner_id)
            if (not date_from or q.qso_date >= date_from)
            and (not date_to or q.qso_date <= date_to)
        ]
        for q in sorted(rows, key=lambda q: (q.qso_date, q.time_on)):
            yield q

    def find_potential_duplicates(self, owner_id, callsign, qso_date, band, mode):
        return [
            q for q in self._owned(owner_id)
            if q.callsign == callsign and q.qso_date == qso_date
            and q.band == band and q.mode == mode
        ]

    def find_by_callsign(self, owner_id, callsign):
        rows = [q for q in self._owned(owner_id) if q.callsign.upper() == callsign.upper()]
        return sorted(rows, key=lambda q: (q.qso_date, q.time_on), reverse=True)

    def get_qso_for_owner(self, qso_id, owner_id):
        q = self.rows.get(qso_id)
        return q if q is not None and q.owner_id == owner_id else None

    def count_qsos(self, owner_id):
        return len(self._owned(owner_id))

    def save_qso(self, qso):
        self.saves += 1
        self.rows[qso.id] = qso
        return qso

    def delete_qso(self, qso_id, owner_id):
        if self.get_qso_for_owner(qso_id, owner_id) is None:
            return False
        del self.rows[qso_id]
        return True


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real user config directory."""
    monkeypatch.setenv("QSOLOG_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.delenv("QSOLOG_OWNER", raising=False)
    monkeypatch.delenv("QSOLOG_LOG_LEVEL", raising=False)
    return tmp_path / "config.json"


@pytest.fixture
def owner():
    return uuid.uuid4()


@pytest.fixture
def other_owner():
    return uuid.uuid4()


@pytest.fixture
def sample_draft():
    """Create a sample draft for testing."""
    return QsoDraft(
        callsign="SP1ABC",
        qso_date=date(2024, 7, 4),
        time_on=time(12, 34, 56),
        band="20m",
        mode=Mode.CW,
        frequency_khz=Decimal("14025"),
        rst_sent="599",
        rst_recv="579",
        qth="Szczecin",
        grid_square="JO73",
        notes="Test QSO",
    )


@pytest.fixture
def make_qso(owner):
    """Factory for stored-looking QSOs with sensible defaults."""

    def _make(**overrides):
        owner_id = overrides.pop("owner_id", owner)
        fields = {
            "callsign": "SP1ABC",
            "qso_date": date(2024, 7, 4),
            "time_on": time(12, 34, 56),
            "band": "20m",
            "mode": Mode.CW,
        }
        fields.update(overrides)
        return QSO.create(owner_id, QsoDraft(**fields))

    return _make


@pytest.fixture
def memory_repo():
    return MemoryRepository()


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Create a temporary database for testing."""
    from qsolog import storage

    monkeypatch.setenv("QSOLOG_DB_PATH", str(tmp_path / "test.sqlite3"))
    storage.reset_engine()
    storage.create_db_and_tables()
    try:
        yield tmp_path / "test.sqlite3"
    finally:
        storage.reset_engine()
