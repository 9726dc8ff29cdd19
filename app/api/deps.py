from fastapi import HTTPException

from app.domain.errors import (
    CampaignNotFoundError,
    ConfigurationError,
    DrawError,
    IntegrationError,
    LoopiifyError,
    NotificationError,
)
from app.services.notifications import NotificationDispatcher, get_notification_dispatcher


def get_dispatcher() -> NotificationDispatcher:
    """Dependency to get the NotificationDispatcher (overridden in tests)."""
    return get_notification_dispatcher()


def to_http_exception(error: LoopiifyError) -> HTTPException:
    """Translate a domain error into the HTTP status the dashboard expects."""
    if isinstance(error, CampaignNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, DrawError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, (IntegrationError, NotificationError)):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
