"""
Outbound customer notifications for stamp/points accrual and lucky draw wins.

Every notification here is best-effort: a failure is logged and reported
back as a warning, never raised into the accrual or draw that triggered it.
"""

import logging
from typing import Callable, Optional

from app.core.config import get_customer_card_url
from app.domain.errors import LoopiifyError
from app.domain.schemas import DEFAULT_WINNER_MESSAGE
from app.repositories.store import StoreRepository
from app.services.onsend import OnSendClient, create_onsend_client

logger = logging.getLogger(__name__)


def render_winner_message(template: Optional[str], customer: dict, prize_name: Optional[str]) -> str:
    """Fill {first_name}, {last_name} and {prize_name} in a campaign's winner template."""
    message = template or DEFAULT_WINNER_MESSAGE
    return (
        message
        .replace("{first_name}", customer.get("first_name") or "there")
        .replace("{last_name}", customer.get("last_name") or "")
        .replace("{prize_name}", prize_name or "a prize")
    )


def build_stamp_message(first_name: Optional[str], stamps: int, total_stamps: int, card_url: str) -> str:
    message = (
        f"Hi {first_name or 'there'}! You've earned a new stamp! 🎉\n\n"
        f"You now have {stamps} out of {total_stamps} stamps.\n\n"
        f"View your loyalty card here: {card_url}\n\n"
    )
    if stamps >= total_stamps:
        message += "🎊 Congratulations! You've earned a reward! Show this message to claim it."
    return message


def build_points_message(first_name: Optional[str], earned: int, balance: int, card_url: str) -> str:
    return (
        f"Hi {first_name or 'there'}! You've earned {earned} points! 🎉\n\n"
        f"Your balance is now {balance} points.\n\n"
        f"View your loyalty card here: {card_url}"
    )


class NotificationDispatcher:
    """Sends WhatsApp notifications using the store's OnSend API key."""

    def __init__(self, client_factory: Callable[[dict | None], OnSendClient] = create_onsend_client):
        self._client_factory = client_factory

    def _send(self, store_id: str, customer: dict, build_message: Callable[[dict], str]) -> Optional[str]:
        """Send one text message; return a warning string instead of raising."""
        try:
            store = StoreRepository.get_by_id(store_id)
            if not store or not store.get("api_key"):
                logger.warning(f"WhatsApp API key not configured for store {store_id}, skipping notification")
                return "WhatsApp API key not configured. Please configure it in Settings > WhatsApp API."
            if not customer.get("phone"):
                logger.warning(f"Customer {customer.get('id')} has no phone number, skipping notification")
                return "Customer phone number not found"

            client = self._client_factory(store)
            client.send_text(customer["phone"], build_message(store))
            return None
        except LoopiifyError as e:
            logger.error(f"Notification to customer {customer.get('id')} failed: {e}")
            return str(e)
        except Exception as e:
            logger.exception(f"Unexpected error sending notification to customer {customer.get('id')}: {e}")
            return "Notification failed to send. Please check WhatsApp settings."

    def notify_winner(self, store_id: str, customer: dict, prize_name: str, template: Optional[str]) -> Optional[str]:
        """Tell a lucky draw winner what they won. Returns a warning on failure."""
        return self._send(
            store_id,
            customer,
            lambda store: render_winner_message(template, customer, prize_name),
        )

    def notify_stamp_earned(self, store_id: str, customer: dict, stamps: int, total_stamps: int) -> None:
        warning = self._send(
            store_id,
            customer,
            lambda store: build_stamp_message(
                customer.get("first_name"), stamps, total_stamps, get_customer_card_url(store)
            ),
        )
        if warning:
            logger.info(f"Stamp notification not delivered: {warning}")

    def notify_points_earned(self, store_id: str, customer: dict, earned: int, balance: int) -> None:
        warning = self._send(
            store_id,
            customer,
            lambda store: build_points_message(
                customer.get("first_name"), earned, balance, get_customer_card_url(store)
            ),
        )
        if warning:
            logger.info(f"Points notification not delivered: {warning}")


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()
