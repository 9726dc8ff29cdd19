from database.connection import get_db, with_retry


class DrawEntryRepository:

    @staticmethod
    def create(campaign_id: str, customer_id: str, prize_id: str) -> dict | None:
        """Record a winner. Entries are never updated afterwards."""
        db = get_db()
        result = db.table("lucky_draw_entries").insert({
            "campaign_id": campaign_id,
            "customer_id": customer_id,
            "prize_id": prize_id,
            "is_winner": True,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def list_by_campaign(campaign_id: str) -> list[dict]:
        """Get all entries for a campaign, newest first."""
        db = get_db()
        result = db.table("lucky_draw_entries").select("*").eq(
            "campaign_id", campaign_id
        ).order("created_at", desc=True).execute()
        return result.data if result and result.data else []
