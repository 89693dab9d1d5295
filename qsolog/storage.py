"""Persistence layer: SQLite engine setup, sessions, and owner-scoped QSO queries.

The database lives in the user's data directory by default, and can be
overridden via the QSOLOG_DB_PATH environment variable. SQLModel/SQLAlchemy 2.x
are used for ORM-style access.

Every query takes the owner id; there is no way to read or change another
operator's contacts through this module. The module itself is the default
repository collaborator of `qsolog.service.QsoService`.
"""

from __future__ import annotations

import os
import threading
import uuid
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator, List, Optional

from platformdirs import user_data_dir
from sqlmodel import Session, SQLModel, create_engine, func, select

from .config import APP_NAME
from .models import QSO, Mode

DB_ENV_VAR = "QSOLOG_DB_PATH"
EXPORT_BATCH_SIZE = 500


def _default_db_path() -> Path:
    """Return the default location of the SQLite database file.

    On Windows this resolves under %LOCALAPPDATA% using platformdirs.
    """
    data_dir = Path(user_data_dir(appname=APP_NAME, appauthor=False))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "qsolog.sqlite3"


def get_db_path() -> Path:
    """Resolve the active database path, honoring QSOLOG_DB_PATH if set."""
    env = os.getenv(DB_ENV_VAR)
    if env:
        p = Path(env).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    return _default_db_path()


_engine = None
_engine_lock = threading.Lock()


def get_engine():
    """Create (once) and return the SQLAlchemy engine bound to our SQLite DB.

    Raises RuntimeError if database creation fails.
    """
    global _engine
    if _engine is None:
        with _engine_lock:
            # Double-check locking pattern for thread safety
            if _engine is None:
                try:
                    url = f"sqlite:///{get_db_path()}"
                    _engine = create_engine(
                        url,
                        echo=False,
                        pool_size=10,
                        max_overflow=20,
                        pool_timeout=30,
                        connect_args={
                            "check_same_thread": False,  # Allow multi-threading
                            "timeout": 30,  # SQLite busy timeout
                        },
                    )
                except Exception as e:
                    raise RuntimeError(f"Failed to create database engine: {e}") from e
    return _engine


def reset_engine() -> None:
    """Dispose the cached engine so the next call picks up a new QSOLOG_DB_PATH."""
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None


def create_db_and_tables() -> Path:
    """Create all tables for the current metadata if they don't exist yet.

    Raises RuntimeError if table creation fails.
    """
    try:
        engine = get_engine()
        SQLModel.metadata.create_all(engine)
        return get_db_path()
    except Exception as e:
        raise RuntimeError(f"Failed to create database tables: {e}") from e


@contextmanager
def session_scope():
    """Context manager yielding a SQLModel Session bound to our engine.

    Automatically handles session cleanup and rollback on errors.
    """
    session = None
    try:
        session = Session(get_engine())
        yield session
    except Exception:
        if session:
            session.rollback()
        raise
    finally:
        if session:
            session.close()


def _escape_like(text: str) -> str:
    """Make % and _ in user text match literally in a LIKE pattern."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filtered(
    stmt,
    owner_id: uuid.UUID,
    callsign: Optional[str] = None,
    band: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    stmt = stmt.where(QSO.owner_id == owner_id)
    if callsign:
        stmt = stmt.where(QSO.callsign.ilike(f"%{_escape_like(callsign)}%", escape="\\"))
    if band:
        stmt = stmt.where(QSO.band == band)
    if date_from:
        stmt = stmt.where(QSO.qso_date >= date_from)
    if date_to:
        stmt = stmt.where(QSO.qso_date <= date_to)
    return stmt


# Queries


def find_qsos(
    owner_id: uuid.UUID,
    callsign: Optional[str] = None,
    band: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[QSO]:
    """Return one page of the owner's QSOs, newest first.

    `callsign` is a case-insensitive substring match; `band` is exact and the
    date bounds are inclusive.

    Raises RuntimeError if database query fails.
    """
    try:
        with session_scope() as session:
            stmt = _filtered(select(QSO), owner_id, callsign, band, date_from, date_to)
            stmt = (
                stmt.order_by(QSO.qso_date.desc(), QSO.time_on.desc())
                .offset(offset)
                .limit(limit)
            )
            return list(session.exec(stmt))
    except Exception as e:
        raise RuntimeError(f"Failed to list QSOs: {e}") from e


def iter_qsos_for_export(
    owner_id: uuid.UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> Iterator[QSO]:
    """Yield the owner's QSOs oldest first, fetched from the database in batches.

    The generator is single-pass; iterate it again by calling this function again.
    """
    try:
        with session_scope() as session:
            stmt = _filtered(select(QSO), owner_id, date_from=date_from, date_to=date_to)
            stmt = stmt.order_by(QSO.qso_date, QSO.time_on).execution_options(
                yield_per=EXPORT_BATCH_SIZE
            )
            for q in session.exec(stmt):
                yield q
    except Exception as e:
        raise RuntimeError(f"Failed to stream QSOs for export: {e}") from e


def find_potential_duplicates(
    owner_id: uuid.UUID,
    callsign: str,
    qso_date: date,
    band: str,
    mode: Mode,
) -> List[QSO]:
    """Return the owner's QSOs matching callsign, date, band and mode exactly.

    Raises RuntimeError if database query fails.
    """
    try:
        with session_scope() as session:
            stmt = select(QSO).where(
                QSO.owner_id == owner_id,
                QSO.callsign == callsign,
                QSO.qso_date == qso_date,
                QSO.band == band,
                QSO.mode == mode,
            )
            return list(session.exec(stmt))
    except Exception as e:
        raise RuntimeError(f"Failed to look up duplicate QSOs: {e}") from e


def find_by_callsign(owner_id: uuid.UUID, callsign: str) -> List[QSO]:
    """Return the owner's QSOs with exactly this callsign (any case), newest first.

    Raises RuntimeError if database query fails.
    """
    try:
        with session_scope() as session:
            stmt = (
                select(QSO)
                .where(QSO.owner_id == owner_id)
                .where(func.upper(QSO.callsign) == callsign.upper())
                .order_by(QSO.qso_date.desc(), QSO.time_on.desc())
            )
            return list(session.exec(stmt))
    except Exception as e:
        raise RuntimeError(f"Failed to look up callsign {callsign}: {e}") from e


def get_qso_for_owner(qso_id: uuid.UUID, owner_id: uuid.UUID) -> Optional[QSO]:
    """Fetch a QSO by id if it belongs to `owner_id`, else None.

    Raises RuntimeError if database query fails.
    """
    try:
        with session_scope() as session:
            stmt = select(QSO).where(QSO.id == qso_id, QSO.owner_id == owner_id)
            return session.exec(stmt).first()
    except Exception as e:
        raise RuntimeError(f"Failed to retrieve QSO {qso_id}: {e}") from e


def count_qsos(owner_id: uuid.UUID) -> int:
    """Return how many QSOs the owner has logged.

    Raises RuntimeError if database query fails.
    """
    try:
        with session_scope() as session:
            stmt = select(func.count()).select_from(QSO).where(QSO.owner_id == owner_id)
            return int(session.exec(stmt).one())
    except Exception as e:
        raise RuntimeError(f"Failed to count QSOs: {e}") from e


# Writes


def save_qso(qso: QSO) -> QSO:
    """Insert or replace a QSO (matched on id) and return the stored row.

    Raises RuntimeError if the QSO cannot be saved.
    """
    try:
        with session_scope() as session:
            stored = session.merge(qso)
            session.commit()
            session.refresh(stored)
            return stored
    except Exception as e:
        raise RuntimeError(f"Failed to save QSO: {e}") from e


def delete_qso(qso_id: uuid.UUID, owner_id: uuid.UUID) -> bool:
    """Delete the owner's QSO by id, returning True if it existed and was removed.

    Raises RuntimeError if database operation fails.
    """
    try:
        with session_scope() as session:
            stmt = select(QSO).where(QSO.id == qso_id, QSO.owner_id == owner_id)
            q = session.exec(stmt).first()
            if not q:
                return False
            session.delete(q)
            session.commit()
            return True
    except Exception as e:
        raise RuntimeError(f"Failed to delete QSO {qso_id}: {e}") from e
