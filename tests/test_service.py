import dataclasses
import uuid
from datetime import date, datetime, time

import pytest

from qsolog import models
from qsolog.errors import (
    BandValidationError,
    DuplicateQsoError,
    ModeValidationError,
    QsoNotFoundError,
)
from qsolog.models import EqslStatus, LotwStatus, Mode, QslStatus, Submode
from qsolog.service import QsoService


@pytest.fixture
def service(memory_repo):
    return QsoService(memory_repo)


def test_create_assigns_identity_and_defaults(service, owner, sample_draft):
    saved = service.create_qso(owner, sample_draft)
    assert isinstance(saved.id, uuid.UUID)
    assert saved.owner_id == owner
    assert saved.callsign == "SP1ABC"
    assert saved.qsl_status == QslStatus.NONE
    assert saved.lotw_status == LotwStatus.UNKNOWN
    assert saved.eqsl_status == EqslStatus.UNKNOWN
    assert saved.created_at == saved.updated_at
    assert service.count_qsos(owner) == 1


def test_create_rejects_bad_band(service, memory_repo, owner, sample_draft):
    with pytest.raises(BandValidationError) as exc:
        service.create_qso(owner, dataclasses.replace(sample_draft, band="21m"))
    assert "'21m'" in str(exc.value)
    assert memory_repo.saves == 0


def test_create_accepts_band_in_any_case(service, owner, sample_draft):
    saved = service.create_qso(owner, dataclasses.replace(sample_draft, band="20M"))
    assert saved.band == "20M"


def test_create_rejects_bad_mode(service, memory_repo, owner, sample_draft):
    draft = dataclasses.replace(sample_draft, mode=Mode.SSB, submode=Submode.FT8, custom_mode="X")
    with pytest.raises(ModeValidationError) as exc:
        service.create_qso(owner, draft)
    assert len(exc.value.messages) == 3
    assert str(exc.value).startswith("Mode validation failed: customMode requires mode=DATA, ")
    assert memory_repo.saves == 0


def test_duplicate_detected_without_write(service, memory_repo, owner, sample_draft):
    first = service.create_qso(owner, sample_draft)
    later = dataclasses.replace(sample_draft, time_on=time(18, 0, 0))
    with pytest.raises(DuplicateQsoError) as exc:
        service.create_qso(owner, later)
    assert exc.value.existing_ids == [first.id]
    assert memory_repo.saves == 1
    assert service.count_qsos(owner) == 1


def test_duplicate_saved_when_confirmed(service, owner, sample_draft):
    service.create_qso(owner, sample_draft)
    second = service.create_qso(owner, sample_draft, confirm_duplicate=True)
    assert second.id is not None
    assert service.count_qsos(owner) == 2


def test_duplicates_are_per_owner(service, owner, other_owner, sample_draft):
    service.create_qso(owner, sample_draft)
    service.create_qso(other_owner, sample_draft)
    assert service.count_qsos(other_owner) == 1


def test_update_replaces_fields_and_keeps_identity(service, owner, sample_draft, monkeypatch):
    original = service.create_qso(owner, sample_draft)
    later = datetime(2030, 1, 1, 0, 0, 0)
    monkeypatch.setattr(models, "now_utc", lambda: later)

    draft = dataclasses.replace(
        sample_draft, band="40m", mode=Mode.MFSK, submode=Submode.FT4, notes=None
    )
    updated = service.update_qso(owner, original.id, draft)

    assert updated.id == original.id
    assert updated.owner_id == owner
    assert updated.created_at == original.created_at
    assert updated.updated_at == later
    assert updated.band == "40m"
    assert updated.submode == Submode.FT4
    assert updated.notes is None
    # the stored value is replaced, not mutated
    assert original.band == "20m"
    assert original.notes == "Test QSO"


def test_update_patches_only_given_statuses(service, owner, sample_draft):
    saved = service.create_qso(owner, sample_draft)
    updated = service.update_qso(owner, saved.id, sample_draft, lotw_status=LotwStatus.CONFIRMED)
    assert updated.lotw_status == LotwStatus.CONFIRMED
    assert updated.qsl_status == QslStatus.NONE
    assert updated.eqsl_status == EqslStatus.UNKNOWN
    again = service.update_qso(owner, saved.id, sample_draft, qsl_status=QslStatus.SENT)
    assert again.lotw_status == LotwStatus.CONFIRMED
    assert again.qsl_status == QslStatus.SENT


def test_update_skips_duplicate_check(service, owner, sample_draft):
    service.create_qso(owner, sample_draft)
    other = service.create_qso(owner, dataclasses.replace(sample_draft, band="40m"))
    updated = service.update_qso(owner, other.id, sample_draft)
    assert updated.band == "20m"
    assert service.count_qsos(owner) == 2


def test_update_requires_ownership(service, owner, other_owner, sample_draft):
    saved = service.create_qso(owner, sample_draft)
    with pytest.raises(QsoNotFoundError):
        service.update_qso(other_owner, saved.id, sample_draft)
    with pytest.raises(QsoNotFoundError):
        service.update_qso(owner, uuid.uuid4(), sample_draft)


def test_update_validates_before_lookup(service, owner, sample_draft):
    with pytest.raises(BandValidationError):
        service.update_qso(owner, uuid.uuid4(), dataclasses.replace(sample_draft, band="nope"))
    bad_mode = dataclasses.replace(sample_draft, mode=Mode.CW, submode=Submode.PSK31)
    with pytest.raises(ModeValidationError):
        service.update_qso(owner, uuid.uuid4(), bad_mode)


def test_delete(service, owner, other_owner, sample_draft):
    saved = service.create_qso(owner, sample_draft)
    with pytest.raises(QsoNotFoundError):
        service.delete_qso(other_owner, saved.id)
    service.delete_qso(owner, saved.id)
    assert service.count_qsos(owner) == 0
    with pytest.raises(QsoNotFoundError):
        service.delete_qso(owner, saved.id)


def test_get_requires_ownership(service, owner, other_owner, sample_draft):
    saved = service.create_qso(owner, sample_draft)
    assert service.get_qso(owner, saved.id).id == saved.id
    with pytest.raises(QsoNotFoundError):
        service.get_qso(other_owner, saved.id)


def test_list_pages_newest_first(service, owner, sample_draft):
    for day in range(1, 6):
        service.create_qso(owner, dataclasses.replace(sample_draft, qso_date=date(2024, 1, day)))
    first = service.list_qsos(owner, page=0, size=2)
    second = service.list_qsos(owner, page=1, size=2)
    assert [q.qso_date.day for q in first] == [5, 4]
    assert [q.qso_date.day for q in second] == [3, 2]
    assert len(service.list_qsos(owner, callsign="sp1")) == 5
    assert service.list_qsos(owner, band="40m") == []


def test_export_ordered_regardless_of_creation_order(service, owner, sample_draft):
    for call, day, hour in (("CC3CC", 3, 9), ("AA1AA", 1, 23), ("BB2BB", 3, 8)):
        service.create_qso(
            owner,
            dataclasses.replace(
                sample_draft, callsign=call, qso_date=date(2024, 5, day), time_on=time(hour, 0)
            ),
        )
    adif = "".join(service.export_adif(owner))
    assert adif.index("AA1AA") < adif.index("BB2BB") < adif.index("CC3CC")
    rows = "".join(service.export_csv(owner)).splitlines()[1:]
    assert [r.split(",")[0] for r in rows] == ["AA1AA", "BB2BB", "CC3CC"]


def test_export_date_range_and_owner(service, owner, other_owner, sample_draft):
    service.create_qso(owner, dataclasses.replace(sample_draft, callsign="IN1", qso_date=date(2024, 5, 2)))
    service.create_qso(owner, dataclasses.replace(sample_draft, callsign="OUT1", qso_date=date(2024, 6, 2)))
    service.create_qso(other_owner, dataclasses.replace(sample_draft, callsign="OTHER1"))
    csv_text = "".join(service.export_csv(owner, date(2024, 5, 1), date(2024, 5, 31)))
    assert "IN1" in csv_text
    assert "OUT1" not in csv_text
    assert "OTHER1" not in csv_text


def test_export_is_lazy(service, owner):
    chunks = service.export_adif(owner)
    assert next(chunks).startswith("ADIF Export")
    assert list(chunks) == []


ADIF_IMPORT = (
    "Some other logger\n<ADIF_VER:5>3.1.0<EOH>\n"
    "<CALL:5>K1ABC<QSO_DATE:8>20240101<TIME_ON:4>1200<BAND:3>20m<MODE:3>SSB"
    "<QSL_RCVD:9>CONFIRMED<EOR>\n"
    "<CALL:5>G0XYZ<QSO_DATE:8>20240102<TIME_ON:6>130000<BAND:3>40M<MODE:4>MFSK"
    "<SUBMODE:3>FT8<FREQ:5>7.074<EOR>\n"
    "<CALL:6>JA1DEF<QSO_DATE:8>20240103<TIME_ON:4>0100<BAND:3>21m<MODE:2>CW<EOR>\n"
    "<QSO_DATE:8>20240104<TIME_ON:4>0100<BAND:3>20m<MODE:2>CW<EOR>\n"
)


def test_import_runs_create_workflow(service, owner):
    result = service.import_adif(owner, ADIF_IMPORT)
    assert result.imported == 2
    assert result.invalid == 1
    assert result.skipped == 1
    assert result.duplicates == 0
    assert "JA1DEF" in result.errors[0]

    rows = {q.callsign: q for q in service.list_qsos(owner)}
    assert rows["K1ABC"].qsl_status == QslStatus.CONFIRMED
    assert rows["G0XYZ"].submode == Submode.FT8
    assert str(rows["G0XYZ"].frequency_khz) == "7074.000"


def test_reimport_reports_duplicates(service, owner):
    service.import_adif(owner, ADIF_IMPORT)
    again = service.import_adif(owner, ADIF_IMPORT)
    assert again.imported == 0
    assert again.duplicates == 2
    forced = service.import_adif(owner, ADIF_IMPORT, confirm_duplicates=True)
    assert forced.imported == 2
    assert service.count_qsos(owner) == 4


def test_stats_and_suggest(service, owner, sample_draft):
    saved = service.create_qso(owner, dataclasses.replace(sample_draft, notes="Name: Jan"))
    service.update_qso(owner, saved.id, saved.to_draft(), eqsl_status=EqslStatus.CONFIRMED)
    service.create_qso(owner, dataclasses.replace(sample_draft, callsign="DL1XYZ", band="40m"))

    summary = service.stats(owner)
    assert summary["total"] == {"count_all": 2, "count_confirmed": 1}
    assert summary["by_band"]["20m"]["count_confirmed"] == 1

    hint = service.suggest(owner, "sp1abc")
    assert hint["callsign"] == "SP1ABC"
    assert hint["name"] == "Jan"
    assert service.suggest(owner, "N0NE") is None


def test_import_matches_logged_band_spelling(service, owner, sample_draft):
    service.create_qso(owner, sample_draft)
    text = "<CALL:6>SP1ABC<QSO_DATE:8>20240704<TIME_ON:4>2200<BAND:3>20M<MODE:2>CW<EOR>"
    result = service.import_adif(owner, text)
    assert result.imported == 0
    assert result.duplicates == 1
    assert list(service.stats(owner)["by_band"]) == ["20m"]
