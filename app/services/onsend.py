"""
OnSend WhatsApp API client.

One endpoint, bearer-token auth, JSON body:
    {phone_number, message, type}
"""

import logging

import httpx

from app.domain.errors import NotificationDeliveryError, NotificationNotConfiguredError

logger = logging.getLogger(__name__)


class OnSendClient:
    """Sends WhatsApp messages through OnSend on behalf of one store."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        from app.core.config import settings

        self.api_key = api_key
        self.api_url = api_url or settings.onsend_api_url
        self.timeout = timeout if timeout is not None else settings.onsend_timeout
        self._transport = transport

    def _require_api_key(self) -> str:
        if not self.api_key:
            raise NotificationNotConfiguredError(
                "WhatsApp API key not configured. Please configure it in Settings > WhatsApp API."
            )
        return self.api_key

    def send_text(self, phone_number: str, message: str) -> dict:
        """POST one text message. Returns the provider's JSON response."""
        api_key = self._require_api_key()
        if not phone_number:
            raise NotificationNotConfiguredError("Invalid phone number for WhatsApp message")
        if not message or not message.strip():
            raise NotificationNotConfiguredError("WhatsApp message content cannot be empty")

        payload = {"phone_number": phone_number, "message": message, "type": "text"}

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.HTTPError as e:
            raise NotificationDeliveryError(f"OnSend request failed: {e}") from e

        if response.status_code >= 400:
            raise NotificationDeliveryError(
                f"OnSend returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        # OnSend reports some rejections with 200 and success=false
        if isinstance(data, dict) and data.get("success") is False:
            raise NotificationDeliveryError(f"OnSend rejected message: {data.get('message', 'unknown error')}")

        logger.info(f"WhatsApp message sent to {phone_number}")
        return data


def create_onsend_client(store: dict | None) -> OnSendClient:
    """Factory function to create an OnSendClient with the store's API key."""
    return OnSendClient(api_key=(store or {}).get("api_key"))
