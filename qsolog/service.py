"""QSO workflows: create, update, delete, read, export, import, stats.

`QsoService` ties the band catalog, mode rules and duplicate detection around
a repository collaborator. It holds no state besides that collaborator, so a
single instance can serve any number of operators and threads.

Create: band check -> mode rules -> duplicate check (unless confirmed) -> save.
Update: band check -> mode rules -> ownership -> replace fields -> save.
Delete: ownership -> delete.
Export reads already-stored QSOs and does not validate them again.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional, Protocol

from . import storage
from .adif import iter_adif, iter_csv, parse_adif, record_statuses, record_to_draft
from .bands import band_error, is_valid_band
from .duplicates import find_conflicts, should_check
from .errors import (
    BandValidationError,
    DuplicateQsoError,
    ModeValidationError,
    QsoLogError,
    QsoNotFoundError,
)
from .models import QSO, EqslStatus, LotwStatus, Mode, QslStatus, QsoDraft
from .modes import validate_mode
from .stats import LogStats, compute_stats
from .suggestions import CallsignSuggestion, suggest_from_history

logger = logging.getLogger(__name__)


class QsoRepository(Protocol):
    """Storage operations the workflows depend on; `qsolog.storage` implements them."""

    def find_qsos(
        self,
        owner_id: uuid.UUID,
        callsign: Optional[str] = None,
        band: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[QSO]: ...

    def iter_qsos_for_export(
        self,
        owner_id: uuid.UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Iterator[QSO]: ...

    def find_potential_duplicates(
        self, owner_id: uuid.UUID, callsign: str, qso_date: date, band: str, mode: Mode
    ) -> List[QSO]: ...

    def find_by_callsign(self, owner_id: uuid.UUID, callsign: str) -> List[QSO]: ...

    def get_qso_for_owner(self, qso_id: uuid.UUID, owner_id: uuid.UUID) -> Optional[QSO]: ...

    def count_qsos(self, owner_id: uuid.UUID) -> int: ...

    def save_qso(self, qso: QSO) -> QSO: ...

    def delete_qso(self, qso_id: uuid.UUID, owner_id: uuid.UUID) -> bool: ...


@dataclass
class ImportResult:
    """Outcome counts of an ADIF import."""

    imported: int = 0
    duplicates: int = 0
    invalid: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.duplicates + self.invalid + self.skipped


class QsoService:
    """Stateless coordinator of the QSO workflows."""

    def __init__(self, repository: Optional[QsoRepository] = None) -> None:
        self.repository = repository if repository is not None else storage

    # Validation

    def _validate(self, draft: QsoDraft) -> None:
        if not is_valid_band(draft.band):
            raise BandValidationError(band_error(draft.band))
        problems = validate_mode(draft.mode, draft.submode, draft.custom_mode)
        if problems:
            raise ModeValidationError(problems)

    def _owned(self, owner_id: uuid.UUID, qso_id: uuid.UUID) -> QSO:
        qso = self.repository.get_qso_for_owner(qso_id, owner_id)
        if qso is None:
            raise QsoNotFoundError(qso_id)
        return qso

    # Workflows

    def create_qso(
        self, owner_id: uuid.UUID, draft: QsoDraft, confirm_duplicate: bool = False
    ) -> QSO:
        """Validate and store a new QSO.

        Raises BandValidationError or ModeValidationError for invalid input, and
        DuplicateQsoError (without writing anything) when a matching QSO exists
        and `confirm_duplicate` is False.
        """
        self._validate(draft)
        if should_check(confirm_duplicate):
            existing = find_conflicts(
                self.repository, owner_id, draft.callsign, draft.qso_date, draft.band, draft.mode
            )
            if existing:
                logger.info("Rejected duplicate QSO with %s on %s", draft.callsign, draft.qso_date)
                raise DuplicateQsoError(existing)
        saved = self.repository.save_qso(QSO.create(owner_id, draft))
        logger.info("Saved QSO id=%s with %s", saved.id, saved.callsign)
        return saved

    def update_qso(
        self,
        owner_id: uuid.UUID,
        qso_id: uuid.UUID,
        draft: QsoDraft,
        *,
        qsl_status: Optional[QslStatus] = None,
        lotw_status: Optional[LotwStatus] = None,
        eqsl_status: Optional[EqslStatus] = None,
    ) -> QSO:
        """Replace every editable field of an owned QSO, optionally patching statuses.

        No duplicate check is made. Raises QsoNotFoundError when the QSO is
        missing or belongs to someone else.
        """
        self._validate(draft)
        current = self._owned(owner_id, qso_id)
        updated = current.apply_update(
            draft, qsl_status=qsl_status, lotw_status=lotw_status, eqsl_status=eqsl_status
        )
        saved = self.repository.save_qso(updated)
        logger.info("Updated QSO id=%s", saved.id)
        return saved

    def delete_qso(self, owner_id: uuid.UUID, qso_id: uuid.UUID) -> None:
        """Delete an owned QSO; raises QsoNotFoundError otherwise."""
        self._owned(owner_id, qso_id)
        if not self.repository.delete_qso(qso_id, owner_id):
            raise QsoNotFoundError(qso_id)
        logger.info("Deleted QSO id=%s", qso_id)

    def get_qso(self, owner_id: uuid.UUID, qso_id: uuid.UUID) -> QSO:
        """Return an owned QSO; raises QsoNotFoundError otherwise."""
        return self._owned(owner_id, qso_id)

    def list_qsos(
        self,
        owner_id: uuid.UUID,
        callsign: Optional[str] = None,
        band: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 0,
        size: int = 20,
    ) -> List[QSO]:
        """Return one page of the owner's QSOs, newest first."""
        return self.repository.find_qsos(
            owner_id,
            callsign=callsign or None,
            band=band or None,
            date_from=date_from,
            date_to=date_to,
            limit=size,
            offset=page * size,
        )

    def count_qsos(self, owner_id: uuid.UUID) -> int:
        return self.repository.count_qsos(owner_id)

    # Export

    def export_adif(
        self,
        owner_id: uuid.UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Iterator[str]:
        """Lazily yield an ADIF document for the owner's QSOs, oldest first."""
        return iter_adif(self.repository.iter_qsos_for_export(owner_id, date_from, date_to))

    def export_csv(
        self,
        owner_id: uuid.UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Iterator[str]:
        """Lazily yield a CSV document for the owner's QSOs, oldest first."""
        return iter_csv(self.repository.iter_qsos_for_export(owner_id, date_from, date_to))

    # Import

    def import_adif(
        self, owner_id: uuid.UUID, text: str, confirm_duplicates: bool = False
    ) -> ImportResult:
        """Run every ADIF record through the create workflow.

        Records missing required data are skipped, records failing validation
        count as invalid, and duplicates are rejected unless confirmed.
        """
        result = ImportResult()
        for rec in parse_adif(text):
            draft = record_to_draft(rec)
            if draft is None:
                result.skipped += 1
                continue
            try:
                saved = self.create_qso(owner_id, draft, confirm_duplicate=confirm_duplicates)
            except DuplicateQsoError:
                result.duplicates += 1
                continue
            except QsoLogError as e:
                result.invalid += 1
                result.errors.append(f"{draft.callsign} {draft.qso_date}: {e}")
                continue
            statuses = record_statuses(rec)
            if statuses:
                self.repository.save_qso(saved.apply_update(saved.to_draft(), **statuses))
            result.imported += 1
        logger.info(
            "ADIF import: %d imported, %d duplicates, %d invalid, %d skipped",
            result.imported,
            result.duplicates,
            result.invalid,
            result.skipped,
        )
        return result

    # Insights

    def stats(
        self,
        owner_id: uuid.UUID,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> LogStats:
        """Totals and per band / mode / day counts over the owner's log."""
        return compute_stats(self.repository.iter_qsos_for_export(owner_id, date_from, date_to))

    def suggest(self, owner_id: uuid.UUID, callsign: str) -> Optional[CallsignSuggestion]:
        """Prefill hints from earlier QSOs with `callsign`, or None if never worked."""
        return suggest_from_history(callsign, self.repository.find_by_callsign(owner_id, callsign))
