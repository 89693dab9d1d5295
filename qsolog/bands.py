"""ADIF amateur radio band catalog.

Band tokens are matched case-insensitively against the fixed list below. There
is no fuzzy matching and no guessing a band from a frequency.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

BANDS: Tuple[str, ...] = (
    "160m",
    "80m",
    "60m",
    "40m",
    "30m",
    "20m",
    "17m",
    "15m",
    "12m",
    "10m",
    "6m",
    "4m",
    "2m",
    "1.25m",
    "70cm",
    "33cm",
    "23cm",
    "13cm",
    "9cm",
    "6cm",
    "3cm",
    "1.25cm",
    "6mm",
    "4mm",
    "2.5mm",
    "2mm",
    "1mm",
)

_BY_LOWER: Dict[str, str] = {b.lower(): b for b in BANDS}


def canonical_band(token: Optional[str]) -> Optional[str]:
    """Return the catalog spelling of `token` (e.g. "20M" -> "20m"), or None."""
    if not isinstance(token, str) or not token.strip():
        return None
    return _BY_LOWER.get(token.lower())


def is_valid_band(token: Optional[str]) -> bool:
    """True when `token` names a catalog band, ignoring case. Blank is invalid."""
    return canonical_band(token) is not None


def band_error(token: Optional[str]) -> str:
    """Human-readable rejection message for an invalid band token."""
    return (
        f"Invalid band '{token}'. Must be a valid ADIF band "
        "(e.g., 160m, 80m, 40m, 20m, etc.)"
    )
