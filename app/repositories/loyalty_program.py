"""
Repository for the two loyalty program tables.

A store has at most one active program. Nothing in the schema prevents both
tables from holding an active row, so activation always switches the other
kind off first and reads resolve leftovers deterministically.
"""

import logging
from typing import Literal

from app.domain.models import PointsProgram, Program, StampProgram
from database.connection import get_db, with_retry

logger = logging.getLogger(__name__)

ProgramKind = Literal["stamps", "points"]

PROGRAM_TABLES: dict[str, str] = {
    "stamps": "loyalty_stamp_cards",
    "points": "loyalty_points_config",
}


class LoyaltyProgramRepository:

    @staticmethod
    @with_retry()
    def get_config(store_id: str, kind: ProgramKind) -> dict | None:
        """Get the store's (latest) program row of the given kind."""
        db = get_db()
        result = db.table(PROGRAM_TABLES[kind]).select("*").eq(
            "store_id", store_id
        ).order("created_at", desc=True).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def save_config(store_id: str, kind: ProgramKind, data: dict) -> dict | None:
        """Update the store's program row of this kind, or create it (inactive)."""
        db = get_db()
        table = PROGRAM_TABLES[kind]
        existing = LoyaltyProgramRepository.get_config(store_id, kind)
        if existing:
            result = db.table(table).update({
                **data,
                "updated_at": "now()",
            }).eq("id", existing["id"]).execute()
        else:
            result = db.table(table).insert({
                **data,
                "store_id": store_id,
                "is_active": False,
            }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def _get_active_row(store_id: str, kind: ProgramKind) -> dict | None:
        db = get_db()
        result = db.table(PROGRAM_TABLES[kind]).select("*").eq(
            "store_id", store_id
        ).eq("is_active", True).order("updated_at", desc=True).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def get_active_program(store_id: str) -> Program:
        """Return the store's active program: StampProgram, PointsProgram or None."""
        stamps_row = LoyaltyProgramRepository._get_active_row(store_id, "stamps")
        points_row = LoyaltyProgramRepository._get_active_row(store_id, "points")

        if stamps_row and points_row:
            # Rows written before activation was exclusive; the newer one wins
            logger.warning(f"Store {store_id} has both loyalty programs active, using the most recently updated")
            if str(points_row.get("updated_at") or "") > str(stamps_row.get("updated_at") or ""):
                stamps_row = None
            else:
                points_row = None

        if stamps_row:
            return StampProgram.from_row(stamps_row)
        if points_row:
            return PointsProgram.from_row(points_row)
        return None

    @staticmethod
    @with_retry()
    def set_active(store_id: str, kind: ProgramKind, enabled: bool) -> None:
        """Enable or disable one program kind; enabling disables the other kind."""
        db = get_db()
        other = "points" if kind == "stamps" else "stamps"
        if enabled:
            db.table(PROGRAM_TABLES[other]).update({
                "is_active": False,
                "updated_at": "now()",
            }).eq("store_id", store_id).execute()
        db.table(PROGRAM_TABLES[kind]).update({
            "is_active": enabled,
            "updated_at": "now()",
        }).eq("store_id", store_id).execute()

    @staticmethod
    def get_status(store_id: str) -> dict:
        """Which program kind is switched on, as shown by the dashboard toggles."""
        program = LoyaltyProgramRepository.get_active_program(store_id)
        return {
            "points_enabled": isinstance(program, PointsProgram),
            "stamps_enabled": isinstance(program, StampProgram),
        }
