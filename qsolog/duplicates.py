"""Duplicate-contact detection.

Two contacts collide when owner, callsign, date, band and mode are all equal.
The callsign comparison is case-sensitive and the time of day is ignored.

The check is advisory: it runs before the insert, not inside the same
transaction, so two identical submissions racing each other can both be saved.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, List

from .models import Mode

logger = logging.getLogger(__name__)


def should_check(override: bool) -> bool:
    """Duplicate detection is skipped entirely when the caller confirmed the duplicate."""
    return not override


def find_conflicts(
    repository: Any,
    owner_id: uuid.UUID,
    callsign: str,
    qso_date: date,
    band: str,
    mode: Mode,
) -> List[uuid.UUID]:
    """Return ids of the owner's existing contacts that match the candidate."""
    matches = repository.find_potential_duplicates(owner_id, callsign, qso_date, band, mode)
    ids = [q.id for q in matches]
    if ids:
        logger.debug(
            "Found %d potential duplicate(s) for %s on %s %s %s",
            len(ids),
            callsign,
            qso_date,
            band,
            mode.value,
        )
    return ids
