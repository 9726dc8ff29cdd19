from database.connection import get_db, with_retry


class PrizeRepository:

    @staticmethod
    @with_retry()
    def create_many(campaign_id: str, prizes: list[dict]) -> list[dict]:
        """Insert a campaign's prizes, keeping their wheel order in sort_order."""
        db = get_db()
        rows = [
            {
                "campaign_id": campaign_id,
                "name": prize["name"],
                "description": prize.get("description", ""),
                "quantity": prize["quantity"],
                "remaining_quantity": prize["quantity"],
                "probability": prize["probability"],
                "sort_order": index,
            }
            for index, prize in enumerate(prizes)
        ]
        result = db.table("lucky_draw_prizes").insert(rows).execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def list_by_campaign(campaign_id: str) -> list[dict]:
        """Get a campaign's prizes in wheel order."""
        db = get_db()
        result = db.table("lucky_draw_prizes").select("*").eq(
            "campaign_id", campaign_id
        ).order("sort_order").execute()
        return result.data if result and result.data else []

    @staticmethod
    def try_decrement(prize_id: str) -> bool:
        """Claim one unit of inventory.

        Returns False if the prize had nothing left, including when a
        concurrent draw took the last unit first.
        """
        db = get_db()
        result = db.rpc("try_decrement_prize", {"p_prize_id": prize_id}).execute()
        return bool(result and result.data)

    @staticmethod
    def restore(prize_id: str) -> None:
        """Return one unit claimed by try_decrement (capped at quantity)."""
        db = get_db()
        db.rpc("restore_prize", {"p_prize_id": prize_id}).execute()
