"""
Bulk WhatsApp and email sends to a store's customers.

Sends are strictly sequential. WhatsApp sends sleep for the store's
configured interval (30 or 60 seconds) after every successful message to
stay inside the provider's rate limits, so delivering a blast to N customers
takes roughly N * interval seconds. The HTTP route runs delivery as a
background task.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from app.core.config import settings
from app.domain.errors import InvalidConfigurationError, NotificationNotConfiguredError
from app.repositories.customer import CustomerRepository
from app.repositories.store import StoreRepository
from app.services.email import EmailService, get_email_service
from app.services.onsend import OnSendClient, create_onsend_client

logger = logging.getLogger(__name__)

ALLOWED_INTERVALS = (30, 60)


@dataclass
class BlastResult:
    total: int = 0
    sent: int = 0
    failed: int = 0


def _local_order_date(value) -> Optional[str]:
    """Customer's last order date as YYYY-MM-DD in store local time."""
    if not value:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    local = value.astimezone(timezone.utc) + timedelta(hours=settings.store_timezone_offset_hours)
    return local.date().isoformat()


def filter_by_last_order(customers: list[dict], start_date: Optional[date], end_date: Optional[date]) -> list[dict]:
    """Keep customers whose last order falls in [start_date, end_date] (local dates).

    Without a window every customer is kept; with one, customers who never
    ordered are dropped.
    """
    if not start_date and not end_date:
        return list(customers)

    selected = []
    for customer in customers:
        order_day = _local_order_date(customer.get("last_order_date"))
        if order_day is None:
            continue
        if start_date and order_day < start_date.isoformat():
            continue
        if end_date and order_day > end_date.isoformat():
            continue
        selected.append(customer)
    return selected


def set_whatsapp_interval(store_id: str, interval: int) -> dict:
    if interval not in ALLOWED_INTERVALS:
        raise InvalidConfigurationError("Message interval must be 30 or 60 seconds")
    store = StoreRepository.update(store_id, whatsapp_interval=interval)
    if not store:
        raise RuntimeError("Failed to update message interval")
    return store


def prepare_whatsapp_blast(
    store_id: str,
    message: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[dict, list[dict]]:
    """Check the store can send and pick the recipients.

    Raises:
        NotificationNotConfiguredError: no API key or an empty message.
    """
    store = StoreRepository.get_by_id(store_id)
    if not store or not store.get("api_key"):
        raise NotificationNotConfiguredError("Please configure WhatsApp API key in Settings first")
    if not message.strip():
        raise NotificationNotConfiguredError("Please enter a message")

    customers = filter_by_last_order(CustomerRepository.get_all(store_id), start_date, end_date)
    return store, customers


def deliver_whatsapp_blast(
    store: dict,
    customers: list[dict],
    message: str,
    client_factory: Callable[[dict | None], OnSendClient] = create_onsend_client,
    sleep: Callable[[float], None] = time.sleep,
) -> BlastResult:
    """Send one text message to each customer, one at a time."""
    interval = store.get("whatsapp_interval") or settings.whatsapp_default_interval
    client = client_factory(store)
    result = BlastResult(total=len(customers))

    for index, customer in enumerate(customers, start=1):
        logger.info(f"Sending message {index} of {result.total}...")
        try:
            client.send_text(customer.get("phone") or "", message)
        except Exception as e:
            logger.error(f"Failed to send message to {customer.get('phone')}: {e}")
            result.failed += 1
            continue
        result.sent += 1
        sleep(interval)

    logger.info(f"WhatsApp blast for store {store['id']}: {result.sent} sent, {result.failed} failed")
    return result


def send_whatsapp_blast(
    store_id: str,
    message: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    client_factory: Callable[[dict | None], OnSendClient] = create_onsend_client,
    sleep: Callable[[float], None] = time.sleep,
) -> BlastResult:
    """Prepare and deliver a blast in the calling thread.

    Raises:
        NotificationNotConfiguredError: no API key or an empty message;
            nothing is sent.
    """
    store, customers = prepare_whatsapp_blast(store_id, message, start_date, end_date)
    return deliver_whatsapp_blast(store, customers, message, client_factory=client_factory, sleep=sleep)


def send_email_blast(
    store_id: str,
    subject: str,
    html: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    email_service: Optional[EmailService] = None,
) -> BlastResult:
    """Send one email to every selected customer that has an address."""
    email_service = email_service or get_email_service()
    if not email_service.is_configured:
        raise NotificationNotConfiguredError("Email sending is not configured")

    store = StoreRepository.get_by_id(store_id) or {}
    customers = [
        c for c in filter_by_last_order(CustomerRepository.get_all(store_id), start_date, end_date)
        if c.get("email")
    ]
    result = BlastResult(total=len(customers))

    for customer in customers:
        try:
            email_service.send_campaign_email(
                to=customer["email"],
                subject=subject,
                html=html,
                customer_name=customer.get("first_name"),
                store_name=store.get("name"),
            )
        except Exception:
            # Already logged by EmailService
            result.failed += 1
            continue
        result.sent += 1

    logger.info(f"Email blast for store {store_id}: {result.sent} sent, {result.failed} failed")
    return result
