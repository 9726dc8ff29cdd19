"""
Order events forwarded by the WordPress plugin.

Only the transition to "completed" counts. Each delivery of a completed
order updates the customer's purchase aggregates and credits the loyalty
card once; deliveries are not deduplicated by order id, so a retried
webhook is credited again.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from app.domain.schemas import OrderWebhookPayload
from app.repositories.customer import CustomerRepository
from app.services.accrual import record_purchase
from app.services.followups import enqueue_flow_jobs
from app.services.notifications import NotificationDispatcher
from app.services.woocommerce import format_phone_number

logger = logging.getLogger(__name__)

TRIGGER_STATUS = "completed"

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "address_line1",
    "address_line2",
    "city",
    "state",
    "postcode",
    "country",
)


def handle_order_event(
    store: dict,
    payload: OrderWebhookPayload,
    dispatcher: Optional[NotificationDispatcher] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Apply one order webhook to customer metrics and the loyalty card."""
    store_id = store["id"]
    status = (payload.order.status or "").lower()
    if status != TRIGGER_STATUS:
        return {"processed": False, "reason": f"Order status '{payload.order.status}' is ignored"}

    phone = format_phone_number(payload.customer.phone)
    if not phone:
        logger.warning(f"Order {payload.order_id} for store {store_id} has no customer phone, ignoring")
        return {"processed": False, "reason": "Customer phone number missing"}

    existing = CustomerRepository.get_by_phone(store_id, phone)
    profile = {
        field: getattr(payload.customer, field)
        for field in PROFILE_FIELDS
        if getattr(payload.customer, field) is not None
    }
    customer = CustomerRepository.upsert_profile(store_id, phone, profile)
    if not customer:
        raise RuntimeError(f"Failed to save customer for order {payload.order_id}")

    order_date = payload.order.date_created or now or datetime.now(timezone.utc)
    if order_date.tzinfo is None:
        order_date = order_date.replace(tzinfo=timezone.utc)
    customer = CustomerRepository.record_order(customer["id"], payload.order.total, order_date.isoformat()) or customer

    accrual = record_purchase(customer["id"], store_id, payload.order.total, dispatcher=dispatcher)

    is_new = existing is None
    if is_new:
        try:
            enqueue_flow_jobs(store_id, customer, "new_customer", now=now)
        except Exception as e:
            # Follow-ups are marketing, the order itself is already recorded
            logger.error(f"Failed to queue new customer follow-ups for {customer['id']}: {e}")

    logger.info(f"Processed order {payload.order_id} for store {store_id}, customer {customer['id']}")
    return {
        "processed": True,
        "customer_id": customer["id"],
        "is_new_customer": is_new,
        "accrual": accrual,
    }
