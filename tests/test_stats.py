from datetime import date

from qsolog.models import LotwStatus, Mode, QslStatus
from qsolog.stats import compute_stats
from qsolog.suggestions import extract_name, suggest_from_history, truncate_notes


def test_compute_stats(make_qso):
    """Totals and per band / mode / day buckets."""
    confirmed = make_qso(callsign="K1ABC", band="40m")
    confirmed = confirmed.apply_update(confirmed.to_draft(), qsl_status=QslStatus.CONFIRMED)
    sent_only = make_qso(callsign="G0XYZ", band="160m", mode=Mode.SSB)
    sent_only = sent_only.apply_update(sent_only.to_draft(), lotw_status=LotwStatus.SENT)
    qsos = [
        confirmed,
        sent_only,
        make_qso(callsign="JA1DEF", band="40m", qso_date=date(2024, 7, 5)),
    ]

    summary = compute_stats(qsos)

    assert summary["total"] == {"count_all": 3, "count_confirmed": 1}
    assert list(summary["by_band"]) == ["160m", "40m"]  # catalog order
    assert summary["by_band"]["40m"] == {"count_all": 2, "count_confirmed": 1}
    assert summary["by_mode"]["CW"]["count_all"] == 2
    assert summary["by_mode"]["SSB"] == {"count_all": 1, "count_confirmed": 0}
    assert list(summary["by_day"]) == ["2024-07-04", "2024-07-05"]


def test_compute_stats_empty():
    summary = compute_stats(iter([]))
    assert summary["total"] == {"count_all": 0, "count_confirmed": 0}
    assert summary["by_band"] == {}


def test_extract_name():
    assert extract_name("Nice QSO\nName: Jan Kowalski\nQTH Gdansk") == "Jan Kowalski"
    assert extract_name("NAME:Ola") == "Ola"
    assert extract_name("no name here") is None
    assert extract_name(None) is None


def test_truncate_notes():
    assert truncate_notes("short") == "short"
    long = "x" * 150
    snippet = truncate_notes(long)
    assert len(snippet) == 100
    assert snippet.endswith("...")


def test_suggest_from_history(make_qso):
    history = [
        make_qso(qso_date=date(2024, 7, 9), band="40m", qth="Poznan", notes="Name: Jan"),
        make_qso(qso_date=date(2024, 7, 8), band="20m", mode=Mode.SSB),
        make_qso(qso_date=date(2024, 7, 7), band="20m", mode=Mode.SSB),
    ]
    hint = suggest_from_history("sp1abc", history)
    assert hint == {
        "callsign": "SP1ABC",
        "name": "Jan",
        "qth": "Poznan",
        "notes": "Name: Jan",
        "band": "20m",
        "mode": "SSB",
    }
    assert suggest_from_history("sp1abc", []) is None
