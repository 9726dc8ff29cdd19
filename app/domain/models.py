"""
Domain types for the lucky draw and the loyalty programs.

Repositories return plain dicts (Supabase rows); the services convert the
rows they reason about into these dataclasses.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional, Union


def _as_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class Prize:
    id: str
    name: str
    quantity: int
    remaining_quantity: int
    probability: float
    description: str = ""

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_quantity <= 0

    @classmethod
    def from_row(cls, row: dict) -> "Prize":
        return cls(
            id=row["id"],
            name=row["name"],
            quantity=int(row["quantity"]),
            remaining_quantity=int(row["remaining_quantity"]),
            probability=float(row["probability"]),
            description=row.get("description") or "",
        )


@dataclass
class Campaign:
    id: str
    store_id: str
    name: str
    min_spend: float
    start_date: Optional[date]
    end_date: Optional[date]
    is_ended: bool
    winner_message: Optional[str]
    prizes: list[Prize] = field(default_factory=list)
    description: str = ""

    @classmethod
    def from_row(cls, row: dict, prizes: list[dict]) -> "Campaign":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            name=row["name"],
            description=row.get("description") or "",
            min_spend=float(row.get("min_spend") or 0),
            start_date=_as_date(row.get("start_date")),
            end_date=_as_date(row.get("end_date")),
            is_ended=bool(row.get("is_ended")),
            winner_message=row.get("winner_message"),
            prizes=[Prize.from_row(p) for p in prizes],
        )


# ============================================
# Loyalty programs
# ============================================

@dataclass
class StampProgram:
    """Flat one-stamp-per-qualifying-purchase card."""
    id: str
    store_id: str
    promotion_name: str
    min_spend: float
    total_stamps: int
    reward: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    kind: Literal["stamps"] = "stamps"

    @classmethod
    def from_row(cls, row: dict) -> "StampProgram":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            promotion_name=row.get("promotion_name") or "",
            min_spend=float(row.get("min_spend_per_stamp") or 0),
            total_stamps=int(row["total_stamps"]),
            reward=row.get("reward") or "",
            start_date=_as_date(row.get("start_date")),
            end_date=_as_date(row.get("end_date")),
        )


@dataclass
class PointsProgram:
    """Points credited per currency unit (RM) spent."""
    id: str
    store_id: str
    points_per_rm: float
    min_spend: float
    reward_description: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    kind: Literal["points"] = "points"

    @classmethod
    def from_row(cls, row: dict) -> "PointsProgram":
        return cls(
            id=row["id"],
            store_id=row["store_id"],
            points_per_rm=float(row["points_per_rm"]),
            min_spend=float(row.get("min_spend") or 0),
            reward_description=row.get("reward_description") or "",
            start_date=_as_date(row.get("start_date")),
            end_date=_as_date(row.get("end_date")),
        )


# At most one program is active per store; None means no program.
Program = Union[StampProgram, PointsProgram, None]


def is_within_window(program: Union[StampProgram, PointsProgram], today: date) -> bool:
    """Open-ended on either side when a date is missing."""
    if program.start_date and today < program.start_date:
        return False
    if program.end_date and today > program.end_date:
        return False
    return True


# ============================================
# Operation results
# ============================================

@dataclass
class AccrualResult:
    changed: bool
    program: Optional[Literal["stamps", "points"]] = None
    delta: int = 0
    stamps: int = 0
    points: int = 0
    total_stamps: Optional[int] = None
    reward_earned: bool = False


@dataclass
class DrawResult:
    prize: Prize
    customer: dict
    entry: dict
    notification_warning: Optional[str] = None
