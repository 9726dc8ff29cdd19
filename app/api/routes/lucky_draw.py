from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_dispatcher, to_http_exception
from app.core.permissions import StoreAccessContext, require_store_access
from app.domain.errors import CampaignNotFoundError, LoopiifyError
from app.domain.schemas import (
    CampaignCreate,
    CampaignResponse,
    CustomerResponse,
    DrawEntryResponse,
    DrawResponse,
    PrizeResponse,
)
from app.repositories.prize import PrizeRepository
from app.services import lucky_draw
from app.services.eligibility import eligible_customers
from app.services.notifications import NotificationDispatcher

router = APIRouter()


def _campaign_in_store(campaign_id: str, store_id: str):
    """Load a campaign, treating one from another store as missing."""
    try:
        campaign = lucky_draw.get_campaign(campaign_id)
    except CampaignNotFoundError as e:
        raise to_http_exception(e)
    if campaign.store_id != store_id:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


@router.get("/{store_id}/campaigns", response_model=list[CampaignResponse])
def list_campaigns(ctx: StoreAccessContext = Depends(require_store_access)):
    """All lucky draw campaigns of the store, newest first."""
    return lucky_draw.list_campaigns(ctx.store_id)


@router.post("/{store_id}/campaigns", response_model=CampaignResponse, status_code=201)
def create_campaign(
    data: CampaignCreate,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    try:
        return lucky_draw.create_campaign(ctx.store_id, data)
    except LoopiifyError as e:
        raise to_http_exception(e)


@router.get("/{store_id}/eligible", response_model=list[CustomerResponse])
def list_eligible_customers(
    min_spend: float = Query(default=0),
    ctx: StoreAccessContext = Depends(require_store_access),
):
    """Preview of who would be in the draw pool for a given minimum spend."""
    return eligible_customers(ctx.store_id, min_spend)


@router.post("/{store_id}/campaigns/{campaign_id}/draw", response_model=DrawResponse)
def draw_winner(
    campaign_id: str,
    ctx: StoreAccessContext = Depends(require_store_access),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Spin the wheel once.

    409 when the campaign has ended, nobody is eligible, or the selected
    prize is out of stock. A failed WhatsApp notification does not fail the
    draw; it is reported in notification_warning.
    """
    _campaign_in_store(campaign_id, ctx.store_id)
    try:
        result = lucky_draw.run_draw(campaign_id, dispatcher=dispatcher)
    except LoopiifyError as e:
        raise to_http_exception(e)

    winner = result.customer
    full_name = " ".join(n for n in (winner.get("first_name"), winner.get("last_name")) if n)
    return DrawResponse(
        entry_id=result.entry["id"],
        prize=PrizeResponse(**asdict(result.prize)),
        winner=CustomerResponse(**winner),
        message=f"{full_name or winner.get('phone')} won: {result.prize.name}!",
        notification_warning=result.notification_warning,
    )


@router.post("/{store_id}/campaigns/{campaign_id}/end", response_model=CampaignResponse)
def end_campaign(
    campaign_id: str,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    _campaign_in_store(campaign_id, ctx.store_id)
    try:
        row = lucky_draw.end_campaign(campaign_id)
    except LoopiifyError as e:
        raise to_http_exception(e)
    return {**row, "prizes": PrizeRepository.list_by_campaign(campaign_id)}


@router.get("/{store_id}/campaigns/{campaign_id}/entries", response_model=list[DrawEntryResponse])
def list_entries(
    campaign_id: str,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    _campaign_in_store(campaign_id, ctx.store_id)
    return lucky_draw.list_entries(campaign_id)
