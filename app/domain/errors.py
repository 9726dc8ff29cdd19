"""
Domain errors.

Grouped by how the caller is expected to react:
- ConfigurationError: refuse before touching any state, show to the operator.
- DrawError: the draw was aborted with zero side effects.
- NotificationError: only ever logged; never fails a business operation.
- IntegrationError: an external store platform could not be read.

A store without an active loyalty program is deliberately NOT an error;
accrual reports ``changed=False`` instead.
"""


class LoopiifyError(Exception):
    """Base class for all domain errors."""


# ============================================
# Configuration
# ============================================

class ConfigurationError(LoopiifyError):
    pass


class InvalidConfigurationError(ConfigurationError):
    """Campaign or prize definition rejected at creation time."""


class NotificationNotConfiguredError(ConfigurationError):
    """Missing API key, phone number or message body for an outbound message."""


# ============================================
# Lucky draw
# ============================================

class DrawError(LoopiifyError):
    pass


class PrizesExhaustedError(DrawError):
    def __init__(self, message: str = "No more prizes available"):
        super().__init__(message)


class NoEligibleCustomersError(DrawError):
    def __init__(self, message: str = "No eligible customers found"):
        super().__init__(message)


class CampaignNotFoundError(DrawError):
    def __init__(self, campaign_id: str):
        super().__init__(f"Campaign {campaign_id} not found")
        self.campaign_id = campaign_id


class CampaignEndedError(DrawError):
    def __init__(self, campaign_id: str):
        super().__init__(f"Campaign {campaign_id} has ended")
        self.campaign_id = campaign_id


# ============================================
# Notifications
# ============================================

class NotificationError(LoopiifyError):
    pass


class NotificationDeliveryError(NotificationError):
    """The messaging provider rejected the request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# ============================================
# Integrations
# ============================================

class IntegrationError(LoopiifyError):
    pass


class WooCommerceSyncError(IntegrationError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
