from database.connection import get_db, with_retry


class CustomerRepository:

    @staticmethod
    @with_retry()
    def get_by_id(customer_id: str) -> dict | None:
        """Get a customer by ID."""
        db = get_db()
        result = db.table("customers").select("*").eq("id", customer_id).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_by_phone(store_id: str, phone: str) -> dict | None:
        """Get a customer by phone within a store (the natural dedup key)."""
        db = get_db()
        result = db.table("customers").select("*").eq(
            "store_id", store_id
        ).eq("phone", phone).limit(1).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def get_all(store_id: str) -> list[dict]:
        """Get all customers for a store, most recent order first."""
        db = get_db()
        result = db.table("customers").select("*").eq(
            "store_id", store_id
        ).order("last_order_date", desc=True).order("created_at").execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def get_eligible(store_id: str, min_spend: float) -> list[dict]:
        """Customers whose accumulated spend reaches min_spend.

        Most recent purchase first; ties keep insertion order.
        """
        db = get_db()
        result = db.table("customers").select("*").eq(
            "store_id", store_id
        ).gte("total_spent", min_spend).order(
            "last_order_date", desc=True
        ).order("created_at").execute()
        return result.data if result and result.data else []

    @staticmethod
    @with_retry()
    def upsert_profile(store_id: str, phone: str, profile: dict) -> dict | None:
        """Create or update the contact details of a customer keyed by (store_id, phone).

        Purchase aggregates are not touched here; see record_order.
        """
        db = get_db()
        data = {**profile, "store_id": store_id, "phone": phone, "updated_at": "now()"}
        result = db.table("customers").upsert(
            data, on_conflict="store_id,phone"
        ).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    def record_order(customer_id: str, amount: float, order_date: str) -> dict | None:
        """Atomically add an order to the customer's purchase aggregates.

        Not retried: a replay would double count the order.
        """
        db = get_db()
        result = db.rpc("record_customer_order", {
            "p_customer_id": customer_id,
            "p_amount": amount,
            "p_order_date": order_date,
        }).execute()
        return result.data[0] if result and result.data else None

    @staticmethod
    @with_retry()
    def upsert_many(rows: list[dict]) -> int:
        """Bulk upsert customers on (store_id, phone). Returns the number of rows sent."""
        if not rows:
            return 0
        db = get_db()
        db.table("customers").upsert(
            rows, on_conflict="store_id,phone", ignore_duplicates=False
        ).execute()
        return len(rows)
