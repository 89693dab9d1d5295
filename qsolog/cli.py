"""Command-line interface for QSO Log.

Commands cover initializing the database, logging and editing QSOs,
listing/searching, ADIF/CSV export, ADIF import, statistics and callsign
suggestions. Every command acts on behalf of the configured operator
(see `qsolog whoami`).
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from qsolog.bands import canonical_band
from qsolog.config import config_path, ensure_owner_id, load_settings
from qsolog.errors import DuplicateQsoError, QsoLogError
from qsolog.log import configure_logging
from qsolog.models import EqslStatus, LotwStatus, Mode, QslStatus, QsoDraft, Submode
from qsolog.service import QsoService
from qsolog.storage import create_db_and_tables, get_db_path

app = typer.Typer(add_completion=False, help="QSO Log - ham radio contact logger")
console = Console()
service = QsoService()


# Optional draft fields `edit --clear` can empty
CLEARABLE = {
    "submode": "submode",
    "custom-mode": "custom_mode",
    "freq": "frequency_khz",
    "rst-sent": "rst_sent",
    "rst-recv": "rst_recv",
    "qth": "qth",
    "grid": "grid_square",
    "notes": "notes",
}


class ExportFormat(str, Enum):
    adif = "adif"
    csv = "csv"


# Utilities


def _parse_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD (or "today"); None passes through.

    Raises typer.BadParameter for invalid formats.
    """
    if value is None:
        return None
    if value.lower() == "today":
        return datetime.now(UTC).date()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as e:
        raise typer.BadParameter(f"Unrecognized date format: {value}") from e


def _parse_time(value: Optional[str]) -> Optional[time]:
    """Parse HH:MM[:SS] (or "now"); None passes through.

    Raises typer.BadParameter for invalid formats.
    """
    if value is None:
        return None
    if value.lower() == "now":
        return datetime.now(UTC).time().replace(microsecond=0)
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise typer.BadParameter(f"Unrecognized time format: {value}")


def _parse_freq(value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation as e:
        raise typer.BadParameter(f"Frequency must be a number of kHz: {value}") from e


def _band(value: Optional[str]) -> Optional[str]:
    # Unknown bands pass through unchanged so validation can report them
    if value is None:
        return None
    return canonical_band(value) or value


def _ensure_db() -> None:
    """Ensure the SQLite database and tables exist (idempotent).

    Raises typer.Exit on database creation failure.
    """
    try:
        create_db_and_tables()
    except Exception as e:
        console.print(f"[red]Error creating database: {e}[/red]")
        raise typer.Exit(1) from e


def _fail(action: str, e: Exception) -> typer.Exit:
    if isinstance(e, DuplicateQsoError):
        console.print(f"[yellow]{e}[/yellow]")
        console.print("Re-run with --confirm-duplicate to save it anyway.")
    else:
        console.print(f"[red]Error {action}: {e}[/red]")
    return typer.Exit(1)


def _status(value) -> str:
    return value.value if value is not None else ""


def _qso_table(title: str, rows) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID")
    table.add_column("UTC")
    table.add_column("Call")
    table.add_column("Band")
    table.add_column("Mode")
    table.add_column("Grid")
    table.add_column("Notes")
    for q in rows:
        mode = q.custom_mode or (q.submode.value if q.submode else q.mode.value)
        table.add_row(
            str(q.id)[:8],
            f"{q.qso_date.isoformat()} {q.time_on.strftime('%H:%M:%S')}",
            q.callsign,
            q.band,
            mode,
            q.grid_square or "",
            (q.notes or "")[:40],
        )
    return table


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, help="Logging level, e.g. INFO or DEBUG"),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level)


@app.command()
def init() -> None:
    """Create the database in your user data directory (or QSOLOG_DB_PATH)."""
    try:
        path = create_db_and_tables()
        owner = ensure_owner_id()
        console.print(f"Database ready at: [bold]{path}[/bold]")
        console.print(f"Operator id: {owner}")
    except Exception as e:
        console.print(f"[red]Error initializing database: {e}[/red]")
        raise typer.Exit(1) from e


@app.command()
def whoami() -> None:
    """Show the operator id used for every command and where it is configured."""
    owner = ensure_owner_id()
    console.print(f"Operator id: {owner}")
    console.print(f"Config: {config_path()}")
    console.print(f"Database: {get_db_path()}")


@app.command()
def log(
    call: str = typer.Option(..., help="Station callsign, e.g., SP1ABC"),
    band: str = typer.Option(..., help="Band, e.g., 20m"),
    mode: Mode = typer.Option(..., case_sensitive=False, help="ADIF mode"),
    on: str = typer.Option("today", "--date", help="UTC date: 'today' or 'YYYY-MM-DD'"),
    at: str = typer.Option("now", "--time", help="UTC time: 'now' or 'HH:MM[:SS]'"),
    submode: Optional[Submode] = typer.Option(None, case_sensitive=False, help="ADIF submode"),
    custom_mode: Optional[str] = typer.Option(None, help="Mode name outside the ADIF list"),
    freq: Optional[str] = typer.Option(None, help="Frequency in kHz"),
    rst_sent: Optional[str] = typer.Option(None, help="Report sent"),
    rst_recv: Optional[str] = typer.Option(None, help="Report received"),
    qth: Optional[str] = typer.Option(None, help="QTH / city"),
    grid: Optional[str] = typer.Option(None, help="Maidenhead grid"),
    notes: Optional[str] = typer.Option(None, help="Notes"),
    confirm_duplicate: bool = typer.Option(False, help="Save even if a similar QSO exists"),
) -> None:
    """Log a new QSO."""
    _ensure_db()
    draft = QsoDraft(
        callsign=call.upper(),
        qso_date=_parse_date(on),
        time_on=_parse_time(at),
        band=_band(band),
        mode=mode,
        frequency_khz=_parse_freq(freq),
        submode=submode,
        custom_mode=custom_mode,
        rst_sent=rst_sent,
        rst_recv=rst_recv,
        qth=qth,
        grid_square=grid,
        notes=notes,
    )
    try:
        saved = service.create_qso(ensure_owner_id(), draft, confirm_duplicate=confirm_duplicate)
    except (QsoLogError, RuntimeError) as e:
        raise _fail("logging QSO", e) from e
    console.print(f"Saved QSO id={saved.id} with {saved.callsign}")


@app.command()
def edit(
    qso_id: uuid.UUID = typer.Argument(..., help="QSO ID to change"),
    call: Optional[str] = typer.Option(None, help="Station callsign"),
    band: Optional[str] = typer.Option(None, help="Band, e.g., 20m"),
    mode: Optional[Mode] = typer.Option(None, case_sensitive=False, help="ADIF mode"),
    on: Optional[str] = typer.Option(None, "--date", help="UTC date 'YYYY-MM-DD'"),
    at: Optional[str] = typer.Option(None, "--time", help="UTC time 'HH:MM[:SS]'"),
    submode: Optional[Submode] = typer.Option(None, case_sensitive=False, help="ADIF submode"),
    custom_mode: Optional[str] = typer.Option(None, help="Mode name outside the ADIF list"),
    freq: Optional[str] = typer.Option(None, help="Frequency in kHz"),
    rst_sent: Optional[str] = typer.Option(None, help="Report sent"),
    rst_recv: Optional[str] = typer.Option(None, help="Report received"),
    qth: Optional[str] = typer.Option(None, help="QTH / city"),
    grid: Optional[str] = typer.Option(None, help="Maidenhead grid"),
    notes: Optional[str] = typer.Option(None, help="Notes"),
    qsl: Optional[QslStatus] = typer.Option(None, case_sensitive=False, help="Paper QSL status"),
    lotw: Optional[LotwStatus] = typer.Option(None, case_sensitive=False, help="LoTW status"),
    eqsl: Optional[EqslStatus] = typer.Option(None, case_sensitive=False, help="eQSL status"),
    clear: Optional[List[str]] = typer.Option(
        None, "--clear", help=f"Empty an optional field; repeatable: {', '.join(CLEARABLE)}"
    ),
) -> None:
    """Change fields of an existing QSO; options left out keep their current value.

    Use --clear (repeatable) to empty optional fields such as the submode.
    """
    cleared = {}
    for name in clear or []:
        if name.lower() not in CLEARABLE:
            raise typer.BadParameter(f"Cannot clear '{name}'; choose from {', '.join(CLEARABLE)}")
        cleared[CLEARABLE[name.lower()]] = None
    _ensure_db()
    owner = ensure_owner_id()
    try:
        current = service.get_qso(owner, qso_id)
        changes = {
            "callsign": call.upper() if call else None,
            "band": _band(band),
            "mode": mode,
            "qso_date": _parse_date(on),
            "time_on": _parse_time(at),
            "submode": submode,
            "custom_mode": custom_mode,
            "frequency_khz": _parse_freq(freq),
            "rst_sent": rst_sent,
            "rst_recv": rst_recv,
            "qth": qth,
            "grid_square": grid,
            "notes": notes,
        }
        changes = {k: v for k, v in changes.items() if v is not None}
        draft = dataclasses.replace(current.to_draft(), **{**cleared, **changes})
        saved = service.update_qso(
            owner, qso_id, draft, qsl_status=qsl, lotw_status=lotw, eqsl_status=eqsl
        )
    except (QsoLogError, RuntimeError) as e:
        raise _fail("updating QSO", e) from e
    console.print(f"Updated QSO id={saved.id}")


@app.command()
def show(qso_id: uuid.UUID = typer.Argument(..., help="QSO ID to display")) -> None:
    """Show every field of one QSO."""
    _ensure_db()
    try:
        q = service.get_qso(ensure_owner_id(), qso_id)
    except (QsoLogError, RuntimeError) as e:
        raise _fail("reading QSO", e) from e
    table = Table(title=f"QSO {q.id}")
    table.add_column("Field")
    table.add_column("Value")
    for name, value in (
        ("Call", q.callsign),
        ("Date", q.qso_date.isoformat()),
        ("Time", q.time_on.strftime("%H:%M:%S")),
        ("Band", q.band),
        ("Frequency (kHz)", format(q.frequency_khz, "f") if q.frequency_khz is not None else ""),
        ("Mode", q.mode.value),
        ("Submode", _status(q.submode)),
        ("Custom mode", q.custom_mode or ""),
        ("RST sent/recv", f"{q.rst_sent or ''} / {q.rst_recv or ''}"),
        ("QTH", q.qth or ""),
        ("Grid", q.grid_square or ""),
        ("Notes", q.notes or ""),
        ("QSL / LoTW / eQSL", f"{_status(q.qsl_status)} / {_status(q.lotw_status)} / {_status(q.eqsl_status)}"),
        ("Updated", f"{q.updated_at}Z"),
    ):
        table.add_row(name, value)
    console.print(table)


@app.command("list")
def list_cmd(
    call: Optional[str] = typer.Option(None, help="Filter by callsign contains"),
    band: Optional[str] = typer.Option(None, help="Exact band value"),
    date_from: Optional[str] = typer.Option(None, "--from", help="First date, YYYY-MM-DD"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last date, YYYY-MM-DD"),
    page: int = typer.Option(0, min=0, help="Page number, starting at 0"),
    size: Optional[int] = typer.Option(None, min=1, max=1000, help="QSOs per page"),
) -> None:
    """Display your QSOs newest first, optionally filtered."""
    _ensure_db()
    try:
        rows = service.list_qsos(
            ensure_owner_id(),
            callsign=call,
            band=_band(band),
            date_from=_parse_date(date_from),
            date_to=_parse_date(date_to),
            page=page,
            size=size or load_settings()["page_size"],
        )
    except RuntimeError as e:
        raise _fail("listing QSOs", e) from e
    if not rows:
        console.print("No QSOs found.")
        return
    console.print(_qso_table(f"QSOs (page {page})", rows))


@app.command()
def remove(qso_id: uuid.UUID = typer.Argument(..., help="QSO ID to delete")) -> None:
    """Delete one of your QSOs."""
    _ensure_db()
    try:
        service.delete_qso(ensure_owner_id(), qso_id)
    except (QsoLogError, RuntimeError) as e:
        raise _fail("deleting QSO", e) from e
    console.print(f"Deleted QSO id={qso_id}")


@app.command()
def export(
    output: Path = typer.Option(..., dir_okay=False, writable=True, help="File to write"),
    fmt: ExportFormat = typer.Option(ExportFormat.adif, "--format", help="adif or csv"),
    date_from: Optional[str] = typer.Option(None, "--from", help="First date, YYYY-MM-DD"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last date, YYYY-MM-DD"),
) -> None:
    """Write your QSOs (oldest first) to an ADIF or CSV file, streaming."""
    _ensure_db()
    owner = ensure_owner_id()
    start, end = _parse_date(date_from), _parse_date(date_to)
    chunks = (
        service.export_adif(owner, start, end)
        if fmt == ExportFormat.adif
        else service.export_csv(owner, start, end)
    )
    count = -1  # the first chunk is the header
    try:
        with output.open("w", encoding="utf-8", newline="") as f:
            for chunk in chunks:
                f.write(chunk)
                count += 1
    except (OSError, RuntimeError) as e:
        raise _fail("exporting", e) from e
    console.print(f"Exported {count} QSOs to {output}")


@app.command()
def import_adif(
    src: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="ADIF file"),
    confirm_duplicates: bool = typer.Option(False, help="Import records that look like duplicates"),
) -> None:
    """Import QSOs from an ADIF file; each record is validated like a new QSO."""
    _ensure_db()
    try:
        text = src.read_text(encoding="utf-8", errors="ignore")
        result = service.import_adif(ensure_owner_id(), text, confirm_duplicates=confirm_duplicates)
    except (OSError, RuntimeError) as e:
        raise _fail("importing ADIF", e) from e
    console.print(
        f"Imported {result.imported} QSOs "
        f"({result.duplicates} duplicates, {result.invalid} invalid, {result.skipped} skipped)."
    )
    for err in result.errors[:20]:
        console.print(f"- {err}")


@app.command()
def stats(
    date_from: Optional[str] = typer.Option(None, "--from", help="First date, YYYY-MM-DD"),
    date_to: Optional[str] = typer.Option(None, "--to", help="Last date, YYYY-MM-DD"),
    json_out: bool = typer.Option(False, help="Output JSON"),
) -> None:
    """Count QSOs overall and by band, mode and day, with confirmations."""
    _ensure_db()
    try:
        summary = service.stats(ensure_owner_id(), _parse_date(date_from), _parse_date(date_to))
    except RuntimeError as e:
        raise _fail("computing stats", e) from e
    if json_out:
        console.print_json(data=summary)
        return
    table = Table(title="Log statistics")
    table.add_column("Group")
    table.add_column("QSOs", justify="right")
    table.add_column("Confirmed", justify="right")
    total = summary["total"]
    table.add_row("Total", str(total["count_all"]), str(total["count_confirmed"]))
    for label, group in (("Band", "by_band"), ("Mode", "by_mode")):
        for key, counts in summary[group].items():
            table.add_row(f"{label} {key}", str(counts["count_all"]), str(counts["count_confirmed"]))
    console.print(table)


@app.command()
def suggest(call: str = typer.Argument(..., help="Callsign to look up in your log")) -> None:
    """Show what you logged last time you worked this station."""
    _ensure_db()
    try:
        hint = service.suggest(ensure_owner_id(), call)
    except RuntimeError as e:
        raise _fail("looking up callsign", e) from e
    if hint is None:
        console.print(f"No QSOs with {call.upper()} yet.")
        return
    for key in ("callsign", "name", "qth", "band", "mode", "notes"):
        if hint[key]:
            console.print(f"{key}: {hint[key]}")


def main() -> None:  # pragma: no cover - exercised via CLI
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
