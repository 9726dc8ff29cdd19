import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends

from app.api.deps import get_dispatcher
from app.core.permissions import require_webhook_store
from app.domain.schemas import AccrualResponse, OrderWebhookPayload, OrderWebhookResponse
from app.services.notifications import NotificationDispatcher
from app.services.order_intake import handle_order_event

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/order", response_model=OrderWebhookResponse)
def receive_order(
    payload: OrderWebhookPayload,
    store: dict = Depends(require_webhook_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Order status change pushed by the WordPress plugin.

    Non-completed orders are acknowledged with processed=false so the plugin
    does not retry them.
    """
    logger.info(f"Order webhook {payload.order_id} ({payload.order.status}) for store {store['id']}")
    outcome = handle_order_event(store, payload, dispatcher=dispatcher)
    accrual = outcome.pop("accrual", None)
    if accrual is not None:
        outcome["accrual"] = AccrualResponse(**asdict(accrual))
    return OrderWebhookResponse(**outcome)
