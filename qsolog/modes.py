"""Mode / submode / custom-mode rules.

Rules:
- A custom mode requires mode DATA and no submode.
- FT8, FT4 and JS8 require mode MFSK.
- PSK31, PSK63 and PSK125 require mode PSK.

Every broken rule is reported; validation does not stop at the first one.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .models import Mode, Submode

# Submodes missing from this table (JT65, JT9, OLIVIA, CONTESTIA) may be
# combined with any mode.
SUBMODE_REQUIRED_MODE: Dict[Submode, Mode] = {
    Submode.FT8: Mode.MFSK,
    Submode.FT4: Mode.MFSK,
    Submode.JS8: Mode.MFSK,
    Submode.PSK31: Mode.PSK,
    Submode.PSK63: Mode.PSK,
    Submode.PSK125: Mode.PSK,
}


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_mode(
    mode: Optional[Mode],
    submode: Optional[Submode],
    custom_mode: Optional[str],
) -> List[str]:
    """Return the list of rule violations; an empty list means the combination is valid."""
    errors: List[str] = []

    if not _is_blank(custom_mode):
        if mode != Mode.DATA:
            errors.append("customMode requires mode=DATA")
        if submode is not None:
            errors.append("customMode requires submode=null")

    if submode is not None:
        required = SUBMODE_REQUIRED_MODE.get(submode)
        if required is not None and mode != required:
            got = mode.value if mode is not None else None
            errors.append(
                f"Submode {submode.value} requires mode {required.value}, but got {got}"
            )

    return errors


def parse_mode(value: Optional[str]) -> Optional[Mode]:
    """Parse a mode name case-insensitively; None for blank input.

    Raises ValueError for names outside the enumerated set.
    """
    if _is_blank(value):
        return None
    return Mode(value.strip().upper())


def parse_submode(value: Optional[str]) -> Optional[Submode]:
    """Parse a submode name case-insensitively; None for blank input.

    Raises ValueError for names outside the enumerated set.
    """
    if _is_blank(value):
        return None
    return Submode(value.strip().upper())
