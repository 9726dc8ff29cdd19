from database.connection import get_db, with_retry


class LoyaltyCardRepository:

    @staticmethod
    @with_retry()
    def get(store_id: str, customer_id: str) -> dict | None:
        """Get a customer's card for a store, if one has been created."""
        db = get_db()
        result = db.table("loyalty_cards").select("*").eq(
            "store_id", store_id
        ).eq("customer_id", customer_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def increment(store_id: str, customer_id: str, stamps: int = 0, points: int = 0) -> dict:
        """Create the card on first use and add stamps/points in one atomic call.

        Not retried: a replay would credit the purchase twice.
        """
        db = get_db()
        result = db.rpc("increment_loyalty_card", {
            "p_store_id": store_id,
            "p_customer_id": customer_id,
            "p_stamps": stamps,
            "p_points": points,
        }).execute()
        if not result or not result.data:
            raise RuntimeError(f"Failed to update loyalty card for customer {customer_id}")
        return result.data[0]
