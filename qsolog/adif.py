"""ADIF and CSV export, plus a tolerant ADIF reader for imports.

Both writers are generators: they yield the header first and then one chunk
per QSO, so exporting a large log never holds the whole file in memory. They
expect QSOs already ordered by (date, time) and never reorder them.

ADIF spec: https://www.adif.org/
"""

from __future__ import annotations

from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .bands import canonical_band
from .models import QSO, EqslStatus, LotwStatus, Mode, QslStatus, QsoDraft
from .modes import parse_mode, parse_submode

ADIF_VERSION = "3.1.4"
PROGRAM_ID = "QSOLOG"
CUSTOM_MODE_FIELD = "APP_QSOLOG_CUSTOMMODE"

ADIF_HEADER = (
    "ADIF Export\n"
    f"<ADIF_VER:{len(ADIF_VERSION)}>{ADIF_VERSION}\n"
    f"<PROGRAMID:{len(PROGRAM_ID)}>{PROGRAM_ID}\n"
    "<EOH>\n"
    "\n"
)

# Confirmation statuses are written under these ADIF field names, carrying
# the status name rather than a date.
STATUS_FIELDS = {
    "QSL_RCVD": ("qsl_status", QslStatus),
    "LOTW_QSLRDATE": ("lotw_status", LotwStatus),
    "EQSL_QSLRDATE": ("eqsl_status", EqslStatus),
}

CSV_COLUMNS = [
    "Callsign",
    "Date",
    "Time",
    "Band",
    "Frequency (kHz)",
    "Mode",
    "Submode",
    "Custom Mode",
    "RST Sent",
    "RST Recv",
    "QTH",
    "Grid Square",
    "Notes",
    "QSL Status",
    "LoTW Status",
    "eQSL Status",
]
CSV_HEADER = ",".join(CSV_COLUMNS) + "\n"

_MHZ_QUANTUM = Decimal("0.000001")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def adif_field(name: str, value: Optional[str]) -> str:
    """Render `<NAME:len>value ` with the UTF-8 byte length; "" for blank values."""
    if _is_blank(value):
        return ""
    return f"<{name}:{len(value.encode('utf-8'))}>{value} "


def format_freq_mhz(frequency_khz) -> str:
    """Convert kHz to an MHz string: 6 decimals half-up, no trailing zeros, no exponent."""
    mhz = (_as_decimal(frequency_khz) / 1000).quantize(_MHZ_QUANTUM, rounding=ROUND_HALF_UP)
    return format(mhz.normalize(), "f")


def format_adif_record(q: QSO) -> str:
    """Serialize one QSO as a single `<EOR>`-terminated ADIF line."""
    parts: List[str] = [
        adif_field("CALL", q.callsign),
        adif_field("QSO_DATE", q.qso_date.strftime("%Y%m%d")),
        adif_field("TIME_ON", q.time_on.strftime("%H%M%S")),
        adif_field("BAND", q.band),
    ]

    if not _is_blank(q.custom_mode):
        parts.append(adif_field("MODE", Mode.DATA.value))
        parts.append(adif_field(CUSTOM_MODE_FIELD, q.custom_mode))
    else:
        parts.append(adif_field("MODE", q.mode.value))
        if q.submode is not None:
            parts.append(adif_field("SUBMODE", q.submode.value))

    if q.frequency_khz is not None:
        parts.append(adif_field("FREQ", format_freq_mhz(q.frequency_khz)))
    parts.append(adif_field("RST_SENT", q.rst_sent))
    parts.append(adif_field("RST_RCVD", q.rst_recv))
    parts.append(adif_field("QTH", q.qth))
    parts.append(adif_field("GRIDSQUARE", q.grid_square))
    parts.append(adif_field("COMMENT", q.notes))

    for tag, (attr, _enum) in STATUS_FIELDS.items():
        status = getattr(q, attr)
        if status is not None:
            parts.append(adif_field(tag, status.value))

    parts.append("<EOR>\n")
    return "".join(parts)


def iter_adif(qsos: Iterable[QSO]) -> Iterator[str]:
    """Yield the ADIF header, then one line per QSO."""
    yield ADIF_HEADER
    for q in qsos:
        yield format_adif_record(q)


def dump_adif(qsos: Iterable[QSO]) -> str:
    """Serialize QSOs to a complete ADIF document."""
    return "".join(iter_adif(qsos))


def escape_csv(value: Optional[str]) -> str:
    """Quote a CSV cell when it holds a comma, quote or newline; blank becomes ""."""
    if _is_blank(value):
        return ""
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def _enum_name(value) -> str:
    return value.value if value is not None else ""


def format_csv_row(q: QSO) -> str:
    """Serialize one QSO as a CSV row using the stored values as-is."""
    cells = [
        escape_csv(q.callsign),
        q.qso_date.isoformat(),
        q.time_on.strftime("%H:%M:%S"),
        escape_csv(q.band),
        format(_as_decimal(q.frequency_khz), "f") if q.frequency_khz is not None else "",
        _enum_name(q.mode),
        _enum_name(q.submode),
        escape_csv(q.custom_mode),
        escape_csv(q.rst_sent),
        escape_csv(q.rst_recv),
        escape_csv(q.qth),
        escape_csv(q.grid_square),
        escape_csv(q.notes),
        _enum_name(q.qsl_status),
        _enum_name(q.lotw_status),
        _enum_name(q.eqsl_status),
    ]
    return ",".join(cells) + "\n"


def iter_csv(qsos: Iterable[QSO]) -> Iterator[str]:
    """Yield the CSV header row, then one row per QSO."""
    yield CSV_HEADER
    for q in qsos:
        yield format_csv_row(q)


def dump_csv(qsos: Iterable[QSO]) -> str:
    """Serialize QSOs to a complete CSV document."""
    return "".join(iter_csv(qsos))


# Reading


def _iter_adif_fields(data: bytes) -> Iterator[Tuple[str, Optional[str]]]:
    """Yield (TAG, value) pairs in file order; value is None for bare tags like <EOR>.

    This is a best-effort tokenizer that respects <TAG:len>value (len counted in
    bytes) and ignores type hints. Data values are skipped by length, so a "<"
    inside a value never starts a tag.
    """
    i = 0
    n = len(data)
    while i < n:
        if data[i : i + 1] != b"<":
            i += 1
            continue
        j = data.find(b">", i)
        if j == -1:
            break
        parts = data[i + 1 : j].decode("utf-8", errors="replace").split(":")
        name = parts[0].strip().upper()
        length = None
        if len(parts) >= 2:
            try:
                length = int(parts[1])
            except ValueError:
                length = None
        i = j + 1
        if length is None:
            yield name, None
            continue
        yield name, data[i : i + length].decode("utf-8", errors="replace")
        i += length


def parse_adif(text: str) -> Iterator[Dict[str, str]]:
    """Yield one tag->value dict per ADIF record, skipping the header."""
    rec: Dict[str, str] = {}
    for name, value in _iter_adif_fields(text.encode("utf-8")):
        if value is not None:
            rec[name] = value
        elif name == "EOH":
            rec = {}
        elif name == "EOR":
            if rec:
                yield rec
            rec = {}
    if rec:
        yield rec


def _clean(value: Optional[str]) -> Optional[str]:
    return None if _is_blank(value) else value.strip()


def _parse_time_on(value: str) -> time:
    # hhmm[ss]
    if len(value) < 4:
        raise ValueError(f"invalid TIME_ON: {value}")
    hh, mm = int(value[0:2]), int(value[2:4])
    ss = int(value[4:6]) if len(value) >= 6 else 0
    return time(hh, mm, ss)


def record_to_draft(rec: Dict[str, str]) -> Optional[QsoDraft]:
    """Map a parsed ADIF record to a QsoDraft, or None when required data is missing.

    A MODE outside the enumerated set is kept as a custom mode under DATA. BAND
    is spelled as in the catalog; unknown bands pass through for validation.
    """
    call = _clean(rec.get("CALL"))
    date_s = _clean(rec.get("QSO_DATE"))
    time_s = _clean(rec.get("TIME_ON"))
    band = _clean(rec.get("BAND"))
    band = canonical_band(band) or band
    mode_s = _clean(rec.get("MODE"))
    if not (call and date_s and time_s and band and mode_s):
        return None

    try:
        qso_date = datetime.strptime(date_s[:8], "%Y%m%d").date()
        time_on = _parse_time_on(time_s)
    except ValueError:
        return None

    custom_mode = _clean(rec.get(CUSTOM_MODE_FIELD))
    try:
        mode = parse_mode(mode_s)
    except ValueError:
        mode = Mode.DATA
        custom_mode = custom_mode or mode_s

    try:
        submode = parse_submode(rec.get("SUBMODE"))
    except ValueError:
        submode = None

    frequency_khz = None
    freq = _clean(rec.get("FREQ"))
    if freq:
        try:
            frequency_khz = Decimal(freq) * 1000
        except InvalidOperation:
            frequency_khz = None

    return QsoDraft(
        callsign=call,
        qso_date=qso_date,
        time_on=time_on,
        band=band,
        mode=mode,
        frequency_khz=frequency_khz,
        submode=submode,
        custom_mode=custom_mode,
        rst_sent=_clean(rec.get("RST_SENT")),
        rst_recv=_clean(rec.get("RST_RCVD")),
        qth=_clean(rec.get("QTH")),
        grid_square=_clean(rec.get("GRIDSQUARE")),
        notes=_clean(rec.get("COMMENT")),
    )


def record_statuses(rec: Dict[str, str]) -> Dict[str, object]:
    """Return the confirmation statuses present in a record, keyed by QSO attribute.

    Values that are not status names (e.g. dates from other loggers) are ignored.
    """
    out: Dict[str, object] = {}
    for tag, (attr, enum_cls) in STATUS_FIELDS.items():
        value = _clean(rec.get(tag))
        if not value:
            continue
        try:
            out[attr] = enum_cls(value.upper())
        except ValueError:
            continue
    return out
