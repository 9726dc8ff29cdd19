from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks, Depends

from app.api.deps import to_http_exception
from app.core.permissions import StoreAccessContext, require_store_access
from app.core.security import require_cron_secret
from app.domain.errors import LoopiifyError
from app.domain.schemas import (
    BlastQueuedResponse,
    BlastResponse,
    EmailBlastRequest,
    FollowupProcessResponse,
    IntervalUpdate,
    WhatsAppBlastRequest,
)
from app.services import blaster
from app.services.followups import process_due_jobs

router = APIRouter()
followups_router = APIRouter()


@router.post("/{store_id}/whatsapp/blast", response_model=BlastQueuedResponse, status_code=202)
def whatsapp_blast(
    request: WhatsAppBlastRequest,
    background_tasks: BackgroundTasks,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    """Queue a WhatsApp message to the store's customers, optionally filtered by last order date.

    Configuration problems are reported here; delivery runs in the
    background at the store's message interval.
    """
    try:
        store, customers = blaster.prepare_whatsapp_blast(
            ctx.store_id, request.message, request.start_date, request.end_date
        )
    except LoopiifyError as e:
        raise to_http_exception(e)

    background_tasks.add_task(blaster.deliver_whatsapp_blast, store, customers, request.message)
    return BlastQueuedResponse(total=len(customers))


@router.put("/{store_id}/whatsapp/interval")
def update_whatsapp_interval(
    update: IntervalUpdate,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    try:
        store = blaster.set_whatsapp_interval(ctx.store_id, update.interval)
    except LoopiifyError as e:
        raise to_http_exception(e)
    return {"whatsapp_interval": store["whatsapp_interval"]}


@router.post("/{store_id}/email/blast", response_model=BlastResponse)
def email_blast(
    request: EmailBlastRequest,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    try:
        result = blaster.send_email_blast(
            ctx.store_id, request.subject, request.html, request.start_date, request.end_date
        )
    except LoopiifyError as e:
        raise to_http_exception(e)
    return BlastResponse(**asdict(result))


@followups_router.post(
    "/process",
    response_model=FollowupProcessResponse,
    dependencies=[Depends(require_cron_secret)],
)
def process_followups():
    """Send due follow-up jobs. Called by the external scheduler."""
    return FollowupProcessResponse(**asdict(process_due_jobs()))
