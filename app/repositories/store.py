from database.connection import get_db, with_retry


class StoreRepository:

    @staticmethod
    @with_retry()
    def get_by_id(store_id: str) -> dict | None:
        """Get a store by ID."""
        db = get_db()
        result = db.table("stores").select("*").eq("id", store_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_webhook_key(webhook_key: str) -> dict | None:
        """Resolve the store a WordPress plugin webhook belongs to."""
        db = get_db()
        result = db.table("stores").select("*").eq("webhook_key", webhook_key).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def update(store_id: str, **kwargs) -> dict | None:
        """Update a store."""
        db = get_db()
        result = db.table("stores").update(kwargs).eq("id", store_id).execute()
        return result.data[0] if result and result.data else None
