from database.connection import get_db, with_retry


class CampaignRepository:

    @staticmethod
    @with_retry()
    def create(
        store_id: str,
        name: str,
        min_spend: float,
        start_date: str,
        end_date: str,
        winner_message: str,
        description: str = "",
    ) -> dict | None:
        """Create a lucky draw campaign (without prizes)."""
        db = get_db()
        result = db.table("lucky_draw_campaigns").insert({
            "store_id": store_id,
            "name": name,
            "description": description,
            "min_spend": min_spend,
            "start_date": start_date,
            "end_date": end_date,
            "is_active": True,
            "is_ended": False,
            "winner_message": winner_message,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_id(campaign_id: str) -> dict | None:
        """Get a campaign by ID."""
        db = get_db()
        result = db.table("lucky_draw_campaigns").select("*").eq("id", campaign_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def list_by_store(store_id: str) -> list[dict]:
        """Get all campaigns for a store, newest first."""
        db = get_db()
        result = db.table("lucky_draw_campaigns").select("*").eq(
            "store_id", store_id
        ).order("created_at", desc=True).execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def mark_ended(campaign_id: str) -> dict | None:
        """Set is_ended. There is no way back."""
        db = get_db()
        result = db.table("lucky_draw_campaigns").update({
            "is_ended": True,
        }).eq("id", campaign_id).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def delete(campaign_id: str) -> bool:
        """Delete a campaign; prizes and entries cascade."""
        db = get_db()
        result = db.table("lucky_draw_campaigns").delete().eq("id", campaign_id).execute()
        return bool(result and result.data and len(result.data) > 0)
