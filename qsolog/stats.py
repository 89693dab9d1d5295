"""Log statistics: totals and per band / mode / day counts.

`compute_stats` makes one pass over any iterable of QSOs, so it can consume
the export stream directly. A QSO counts as confirmed when any of its three
confirmation channels is CONFIRMED.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, TypedDict

from .bands import BANDS
from .models import QSO


class Counts(TypedDict):
    """All vs. confirmed contacts for one bucket."""

    count_all: int
    count_confirmed: int


class LogStats(TypedDict):
    """Type definition for the statistics summary dictionary."""

    total: Counts
    by_band: Dict[str, Counts]
    by_mode: Dict[str, Counts]
    by_day: Dict[str, Counts]


def _band_order(band: str) -> tuple:
    lowered = [b.lower() for b in BANDS]
    key = (band or "").lower()
    return (lowered.index(key) if key in lowered else len(lowered), key)


def _as_counts(raw: Dict[str, int]) -> Counts:
    return {"count_all": raw["all"], "count_confirmed": raw["confirmed"]}


def compute_stats(qsos: Iterable[QSO]) -> LogStats:
    """Count contacts overall and grouped by band, mode and date."""
    total = {"all": 0, "confirmed": 0}
    by_band: Dict[str, Dict[str, int]] = defaultdict(lambda: {"all": 0, "confirmed": 0})
    by_mode: Dict[str, Dict[str, int]] = defaultdict(lambda: {"all": 0, "confirmed": 0})
    by_day: Dict[str, Dict[str, int]] = defaultdict(lambda: {"all": 0, "confirmed": 0})

    for q in qsos:
        confirmed = 1 if q.is_confirmed() else 0
        buckets = (
            total,
            by_band[q.band],
            by_mode[q.mode.value],
            by_day[q.qso_date.isoformat()],
        )
        for bucket in buckets:
            bucket["all"] += 1
            bucket["confirmed"] += confirmed

    return {
        "total": _as_counts(total),
        "by_band": {b: _as_counts(by_band[b]) for b in sorted(by_band, key=_band_order)},
        "by_mode": {m: _as_counts(by_mode[m]) for m in sorted(by_mode)},
        "by_day": {d: _as_counts(by_day[d]) for d in sorted(by_day)},
    }
