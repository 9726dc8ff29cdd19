"""
WooCommerce REST sync.

Pulls completed orders and customers from a store's WooCommerce site
(/wp-json/wc/v3, Basic auth with the consumer key/secret), derives purchase
aggregates per customer and upserts them on (store_id, phone).
"""

import logging
import re
from datetime import datetime, timezone
from typing import Iterator, Optional

import httpx

from app.core.config import settings
from app.domain.errors import WooCommerceSyncError
from app.repositories.customer import CustomerRepository

logger = logging.getLogger(__name__)


def format_phone_number(phone: Optional[str]) -> str:
    """Digits only, with the Malaysian 60 country code. Empty input gives ""."""
    cleaned = re.sub(r"\D", "", phone or "")
    if not cleaned:
        return ""
    if not cleaned.startswith("60"):
        cleaned = "60" + cleaned.lstrip("0")
    return cleaned


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """WooCommerce *_gmt fields carry no offset; everything is compared as naive UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class WooCommerceClient:
    """Read-only client for the WooCommerce REST API."""

    def __init__(
        self,
        url: str,
        consumer_key: str,
        consumer_secret: str,
        page_size: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not url or not consumer_key or not consumer_secret:
            raise WooCommerceSyncError("WooCommerce URL, consumer key and consumer secret are required")
        self.base_url = url.rstrip("/") + "/wp-json/wc/v3"
        self.auth = (consumer_key, consumer_secret)
        self.page_size = page_size or settings.woocommerce_page_size
        self._transport = transport

    def _paginate(self, resource: str, params: dict | None = None) -> Iterator[dict]:
        """Yield every item of a collection, following WooCommerce paging."""
        page = 1
        with httpx.Client(
            auth=self.auth,
            timeout=settings.woocommerce_timeout,
            transport=self._transport,
        ) as client:
            while True:
                try:
                    response = client.get(
                        f"{self.base_url}/{resource}",
                        params={**(params or {}), "per_page": self.page_size, "page": page},
                    )
                except httpx.HTTPError as e:
                    raise WooCommerceSyncError(f"Error fetching {resource}: {e}") from e

                if response.status_code >= 400:
                    raise WooCommerceSyncError(
                        f"HTTP error fetching {resource}! status: {response.status_code}",
                        status_code=response.status_code,
                    )

                items = response.json()
                yield from items

                total_pages = response.headers.get("X-WP-TotalPages")
                if total_pages is not None:
                    if page >= int(total_pages):
                        break
                elif len(items) < self.page_size:
                    break
                page += 1

    def fetch_completed_orders(self) -> list[dict]:
        return list(self._paginate("orders", {"status": "completed"}))

    def fetch_customers(self) -> list[dict]:
        return list(self._paginate("customers"))


def aggregate_customers(customers: list[dict], orders: list[dict]) -> list[dict]:
    """Attach orders_count, total_spent and last order details to each customer."""
    orders_by_customer: dict[int, list[dict]] = {}
    for order in orders:
        orders_by_customer.setdefault(order.get("customer_id"), []).append(order)

    enriched = []
    for customer in customers:
        customer_orders = orders_by_customer.get(customer.get("id"), [])
        last_order = max(
            customer_orders,
            key=lambda o: _parse_datetime(o.get("date_created_gmt") or o.get("date_created")) or datetime.min,
            default=None,
        )
        enriched.append({
            **customer,
            "orders_count": len(customer_orders),
            "total_spent": round(sum(float(o.get("total") or 0) for o in customer_orders), 2),
            "last_order_date": (last_order.get("date_created_gmt") or last_order.get("date_created")) if last_order else None,
            "last_order_amount": float(last_order.get("total") or 0) if last_order else 0,
        })
    return enriched


def to_customer_row(store_id: str, wc: dict) -> Optional[dict]:
    """Map an enriched WooCommerce customer to a customers row; None without a phone."""
    billing = wc.get("billing") or {}
    phone = format_phone_number(billing.get("phone"))
    if not phone:
        return None

    last_order_date = _parse_datetime(wc.get("last_order_date"))

    return {
        "store_id": store_id,
        "first_name": wc.get("first_name") or billing.get("first_name"),
        "last_name": wc.get("last_name") or billing.get("last_name"),
        "email": wc.get("email") or billing.get("email"),
        "phone": phone,
        "address_line1": billing.get("address_1"),
        "address_line2": billing.get("address_2") or None,
        "city": billing.get("city"),
        "state": billing.get("state"),
        "postcode": billing.get("postcode"),
        "country": billing.get("country"),
        "total_spent": wc.get("total_spent") or 0,
        "orders_count": wc.get("orders_count") or 0,
        "last_order_date": last_order_date.replace(tzinfo=timezone.utc).isoformat() if last_order_date else None,
        "last_order_amount": wc.get("last_order_amount") or 0,
        "updated_at": "now()",
    }


def sync_customers(store_id: str, client: WooCommerceClient) -> int:
    """Fetch, aggregate and upsert a store's WooCommerce customers. Returns rows upserted."""
    orders = client.fetch_completed_orders()
    customers = client.fetch_customers()
    logger.info(f"WooCommerce sync for store {store_id}: {len(customers)} customers, {len(orders)} completed orders")

    rows = []
    seen_phones = set()
    for wc in aggregate_customers(customers, orders):
        row = to_customer_row(store_id, wc)
        if row is None:
            logger.info(f"Skipping WooCommerce customer {wc.get('id')} without a phone number")
            continue
        if row["phone"] in seen_phones:
            # One upsert batch cannot touch the same (store_id, phone) twice
            continue
        seen_phones.add(row["phone"])
        rows.append(row)

    batch_size = settings.customer_upsert_batch_size
    synced = 0
    for i in range(0, len(rows), batch_size):
        synced += CustomerRepository.upsert_many(rows[i:i + batch_size])

    logger.info(f"WooCommerce sync for store {store_id} upserted {synced} customers")
    return synced


def create_woocommerce_client(store: dict, overrides: dict | None = None) -> WooCommerceClient:
    """Factory function using the store's saved credentials, optionally overridden."""
    overrides = {k: v for k, v in (overrides or {}).items() if v}
    return WooCommerceClient(
        url=overrides.get("url") or store.get("woocommerce_url") or "",
        consumer_key=overrides.get("consumer_key") or store.get("woocommerce_consumer_key") or "",
        consumer_secret=overrides.get("consumer_secret") or store.get("woocommerce_consumer_secret") or "",
    )
