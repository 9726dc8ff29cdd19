import logging
import resend
from app.core.config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via Resend."""

    def __init__(self):
        settings = get_settings()
        self.api_key = settings.resend_api_key
        resend.api_key = self.api_key
        self.sender = settings.email_from

        # Log configuration status (without exposing full key)
        if self.api_key:
            logger.info(f"Resend configured with key: {self.api_key[:10]}...")
        else:
            logger.warning("RESEND_API_KEY is not set!")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def send_campaign_email(
        self,
        to: str,
        subject: str,
        html: str,
        customer_name: str | None = None,
        store_name: str | None = None,
    ) -> bool:
        """Send one marketing email. {first_name} in the body is personalised."""
        html_content = html.replace("{first_name}", customer_name or "there")
        sender = f"{store_name} via {self.sender}" if store_name else self.sender

        try:
            logger.info(f"Sending campaign email to {to}")
            result = resend.Emails.send({
                "from": sender,
                "to": [to],
                "subject": subject,
                "html": html_content,
            })
            logger.info(f"Email sent successfully: {result}")
            return True
        except Exception as e:
            logger.error(f"Failed to send campaign email to {to}: {e}")
            raise


def get_email_service() -> EmailService:
    return EmailService()
