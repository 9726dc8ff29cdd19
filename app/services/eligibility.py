from app.repositories.customer import CustomerRepository


def eligible_customers(store_id: str, min_spend: float) -> list[dict]:
    """Customers of a store whose total spend reaches min_spend.

    Ordered by most recent purchase. An unknown store and a store with no
    qualifying customers both yield an empty list.
    """
    if not store_id:
        return []
    return CustomerRepository.get_eligible(store_id, max(float(min_spend or 0), 0.0))
