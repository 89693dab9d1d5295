"""Data models used by QSO Log.

`QSO` is the single SQLModel table; each row is one contact owned by one
operator. Operator-editable fields travel as an immutable `QsoDraft`, and a
stored `QSO` is never changed in place: `QSO.create` and `QSO.apply_update`
both build fresh instances.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from datetime import UTC, date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Mode(str, Enum):
    """ADIF core modes."""

    CW = "CW"
    SSB = "SSB"
    AM = "AM"
    FM = "FM"
    RTTY = "RTTY"
    PSK = "PSK"
    MFSK = "MFSK"
    DATA = "DATA"


class Submode(str, Enum):
    """ADIF submodes: the core digital ones plus a few common extras."""

    FT8 = "FT8"
    FT4 = "FT4"
    JS8 = "JS8"
    PSK31 = "PSK31"
    JT65 = "JT65"
    JT9 = "JT9"
    OLIVIA = "OLIVIA"
    CONTESTIA = "CONTESTIA"
    PSK63 = "PSK63"
    PSK125 = "PSK125"


class QslStatus(str, Enum):
    """Paper QSL card status."""

    NONE = "NONE"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"


class LotwStatus(str, Enum):
    """Logbook of the World confirmation status."""

    UNKNOWN = "UNKNOWN"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"


class EqslStatus(str, Enum):
    """eQSL confirmation status."""

    UNKNOWN = "UNKNOWN"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"


@dataclass(frozen=True)
class QsoDraft:
    """Operator-editable contact fields, as submitted for create or update."""

    callsign: str
    qso_date: date
    time_on: time
    band: str
    mode: Mode
    frequency_khz: Optional[Decimal] = None
    submode: Optional[Submode] = None
    custom_mode: Optional[str] = None
    rst_sent: Optional[str] = None
    rst_recv: Optional[str] = None
    qth: Optional[str] = None
    grid_square: Optional[str] = None
    notes: Optional[str] = None

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class QSO(SQLModel, table=True):
    """A single logged contact stored in SQLite via SQLModel.

    Attributes
    - id: Opaque UUID assigned at creation, never changed afterwards.
    - owner_id: The operator who logged the contact; the only one allowed to
      read, change, or delete it.
    - callsign/qso_date/time_on/band/mode: Required contact details.
    - frequency_khz: Frequency in kHz (exported to ADIF as MHz).
    - submode/custom_mode: Digital protocol variant, or a free-text mode that
      is exported as DATA.
    - qsl_status/lotw_status/eqsl_status: Confirmation tracking per channel.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: uuid.UUID = Field(index=True, description="Owning operator")

    callsign: str = Field(index=True, description="Worked station's callsign")
    qso_date: date = Field(index=True, description="QSO date (UTC)")
    time_on: time = Field(description="QSO start time (UTC)")
    band: str = Field(index=True)
    frequency_khz: Optional[Decimal] = Field(
        default=None, max_digits=12, decimal_places=3, description="Frequency in kHz"
    )

    # Mode details
    mode: Mode = Field(index=True)
    submode: Optional[Submode] = None
    custom_mode: Optional[str] = None

    # Reports and location
    rst_sent: Optional[str] = None
    rst_recv: Optional[str] = None
    qth: Optional[str] = None
    grid_square: Optional[str] = None
    notes: Optional[str] = None

    # Confirmation tracking
    qsl_status: Optional[QslStatus] = Field(default=QslStatus.NONE)
    lotw_status: Optional[LotwStatus] = Field(default=LotwStatus.UNKNOWN)
    eqsl_status: Optional[EqslStatus] = Field(default=EqslStatus.UNKNOWN)

    # Naive UTC columns
    created_at: datetime = Field(
        default_factory=lambda: now_utc(), sa_type=DateTime(timezone=False)
    )
    updated_at: datetime = Field(
        default_factory=lambda: now_utc(), sa_type=DateTime(timezone=False)
    )

    @classmethod
    def create(cls, owner_id: uuid.UUID, draft: QsoDraft) -> "QSO":
        """Build a new contact with a fresh id, initial statuses and timestamps."""
        stamp = now_utc()
        return cls(
            id=uuid.uuid4(),
            owner_id=owner_id,
            qsl_status=QslStatus.NONE,
            lotw_status=LotwStatus.UNKNOWN,
            eqsl_status=EqslStatus.UNKNOWN,
            created_at=stamp,
            updated_at=stamp,
            **draft.as_dict(),
        )

    def apply_update(
        self,
        draft: QsoDraft,
        *,
        qsl_status: Optional[QslStatus] = None,
        lotw_status: Optional[LotwStatus] = None,
        eqsl_status: Optional[EqslStatus] = None,
    ) -> "QSO":
        """Return a new QSO with every draft field replaced.

        Statuses are only replaced when given. Identity, ownership and
        created_at carry over; updated_at is stamped with the current time.
        """
        return QSO(
            id=self.id,
            owner_id=self.owner_id,
            qsl_status=qsl_status if qsl_status is not None else self.qsl_status,
            lotw_status=lotw_status if lotw_status is not None else self.lotw_status,
            eqsl_status=eqsl_status if eqsl_status is not None else self.eqsl_status,
            created_at=self.created_at,
            updated_at=now_utc(),
            **draft.as_dict(),
        )

    def to_draft(self) -> QsoDraft:
        """Extract the editable fields, e.g. to patch a few of them."""
        return QsoDraft(**{f.name: getattr(self, f.name) for f in fields(QsoDraft)})

    def is_confirmed(self) -> bool:
        """True when any confirmation channel reports CONFIRMED."""
        return (
            self.qsl_status == QslStatus.CONFIRMED
            or self.lotw_status == LotwStatus.CONFIRMED
            or self.eqsl_status == EqslStatus.CONFIRMED
        )


def now_utc() -> datetime:
    """Return the current time as a naive UTC datetime without microseconds.

    We intentionally store naive UTC to keep SQLite handling and output simple.
    """
    return datetime.now(UTC).replace(tzinfo=None, microsecond=0)
