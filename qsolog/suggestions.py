"""Prefill hints for a callsign, taken from the operator's own history with it."""

from __future__ import annotations

from collections import Counter
from typing import List, Optional, Sequence, TypedDict

from .models import QSO

NOTES_SNIPPET_MAX = 100


class CallsignSuggestion(TypedDict):
    callsign: str
    name: Optional[str]
    qth: Optional[str]
    notes: Optional[str]
    band: Optional[str]
    mode: Optional[str]


def extract_name(notes: Optional[str]) -> Optional[str]:
    """Pull an operator name out of notes written like "Name: John"."""
    if not notes:
        return None
    start = notes.lower().find("name:")
    if start < 0:
        return None
    start += len("name:")
    end = notes.find("\n", start)
    if end < 0:
        end = len(notes)
    return notes[start:end].strip() or None


def truncate_notes(notes: Optional[str]) -> Optional[str]:
    if not notes:
        return None
    if len(notes) <= NOTES_SNIPPET_MAX:
        return notes
    return notes[: NOTES_SNIPPET_MAX - 3] + "..."


def _most_common(values: List[str]) -> Optional[str]:
    counts = Counter(v for v in values if v)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def suggest_from_history(callsign: str, history: Sequence[QSO]) -> Optional[CallsignSuggestion]:
    """Build a suggestion from past QSOs (newest first); None when there are none.

    Name, QTH and notes come from the most recent QSO; band and mode are the
    ones used most often with this station.
    """
    if not history:
        return None
    recent = history[0]
    return {
        "callsign": callsign.upper(),
        "name": extract_name(recent.notes),
        "qth": recent.qth,
        "notes": truncate_notes(recent.notes),
        "band": _most_common([q.band for q in history]),
        "mode": _most_common([q.mode.value for q in history]),
    }
