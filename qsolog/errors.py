"""Recoverable, user-facing outcomes of the QSO workflows."""

from __future__ import annotations

import uuid
from typing import List, Sequence


class QsoLogError(Exception):
    """Base class for QSO Log domain errors."""


class BandValidationError(QsoLogError):
    """The band token is not in the catalog."""


class ModeValidationError(QsoLogError):
    """The mode / submode / custom-mode combination breaks one or more rules."""

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages: List[str] = list(messages)
        super().__init__("Mode validation failed: " + ", ".join(self.messages))


class DuplicateQsoError(QsoLogError):
    """A matching contact already exists; resubmit with confirm_duplicate to save anyway."""

    def __init__(self, existing_ids: Sequence[uuid.UUID]) -> None:
        self.existing_ids: List[uuid.UUID] = list(existing_ids)
        ids = ", ".join(str(i) for i in self.existing_ids)
        super().__init__(
            f"Potential duplicate detected (found {len(self.existing_ids)} similar QSO(s)). "
            f"Pass confirm_duplicate to save anyway. Existing IDs: {ids}"
        )


class QsoNotFoundError(QsoLogError):
    """The QSO does not exist or belongs to another operator."""

    def __init__(self, qso_id: uuid.UUID) -> None:
        self.qso_id = qso_id
        super().__init__(f"QSO {qso_id} not found")
