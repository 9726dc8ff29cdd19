"""
Lucky draw campaigns: creation, spinning the wheel, ending.

A draw claims prize inventory with a conditional decrement in the database
(PrizeRepository.try_decrement) and then records the winner. If recording
fails, the claimed unit is given back before the error propagates, so
inventory and entries always agree. Once the entry exists the draw is
committed; notifying the winner is best-effort.
"""

import logging
import random
from typing import Optional

from app.domain.errors import (
    CampaignEndedError,
    CampaignNotFoundError,
    InvalidConfigurationError,
    NoEligibleCustomersError,
    PrizesExhaustedError,
)
from app.domain.models import Campaign, DrawResult
from app.domain.schemas import CampaignCreate
from app.repositories.campaign import CampaignRepository
from app.repositories.draw_entry import DrawEntryRepository
from app.repositories.prize import PrizeRepository
from app.services.eligibility import eligible_customers
from app.services.notifications import NotificationDispatcher, get_notification_dispatcher
from app.services.prize_selector import RandomSource, select_prize, validate_prizes

logger = logging.getLogger(__name__)


def create_campaign(store_id: str, data: CampaignCreate) -> dict:
    """Validate and save a campaign together with its prizes.

    Raises:
        InvalidConfigurationError: before anything is written.
    """
    if not data.name.strip():
        raise InvalidConfigurationError("Please fill in all required fields")
    if data.end_date < data.start_date:
        raise InvalidConfigurationError("End date must be after start date")
    validate_prizes(data.prizes)

    campaign = CampaignRepository.create(
        store_id=store_id,
        name=data.name.strip(),
        description=data.description,
        min_spend=data.min_spend,
        start_date=data.start_date.isoformat(),
        end_date=data.end_date.isoformat(),
        winner_message=data.winner_message,
    )
    if not campaign:
        raise RuntimeError("Failed to create campaign")

    try:
        prizes = PrizeRepository.create_many(
            campaign["id"], [prize.model_dump() for prize in data.prizes]
        )
        if len(prizes) != len(data.prizes):
            raise RuntimeError("Failed to create campaign prizes")
    except Exception:
        # A campaign without its prizes must not be left behind
        CampaignRepository.delete(campaign["id"])
        raise

    logger.info(f"Created lucky draw campaign {campaign['id']} for store {store_id} with {len(prizes)} prizes")
    return {**campaign, "prizes": prizes}


def get_campaign(campaign_id: str) -> Campaign:
    row = CampaignRepository.get_by_id(campaign_id)
    if not row:
        raise CampaignNotFoundError(campaign_id)
    return Campaign.from_row(row, PrizeRepository.list_by_campaign(campaign_id))


def list_campaigns(store_id: str) -> list[dict]:
    """Store campaigns, newest first, each with its prizes."""
    campaigns = CampaignRepository.list_by_store(store_id)
    for campaign in campaigns:
        campaign["prizes"] = PrizeRepository.list_by_campaign(campaign["id"])
    return campaigns


def end_campaign(campaign_id: str) -> dict:
    """Mark a campaign as ended. Ending twice is harmless."""
    row = CampaignRepository.get_by_id(campaign_id)
    if not row:
        raise CampaignNotFoundError(campaign_id)
    if row.get("is_ended"):
        return row
    updated = CampaignRepository.mark_ended(campaign_id)
    logger.info(f"Lucky draw campaign {campaign_id} ended")
    return updated or {**row, "is_ended": True}


def list_entries(campaign_id: str) -> list[dict]:
    return DrawEntryRepository.list_by_campaign(campaign_id)


def run_draw(
    campaign_id: str,
    rng: RandomSource | None = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> DrawResult:
    """Spin the wheel once: pick a prize and a winner, and record the win.

    Raises:
        CampaignNotFoundError, CampaignEndedError
        NoEligibleCustomersError: nobody in the store reaches min_spend.
        PrizesExhaustedError: the selected prize has no stock, including
            when a concurrent draw claimed its last unit.
    A failed draw leaves prizes and entries untouched.
    """
    rng = rng or random
    campaign = get_campaign(campaign_id)
    if campaign.is_ended:
        raise CampaignEndedError(campaign_id)

    customers = eligible_customers(campaign.store_id, campaign.min_spend)
    if not customers:
        raise NoEligibleCustomersError()

    prize = select_prize(campaign.prizes, rng)

    winner = customers[min(int(rng.random() * len(customers)), len(customers) - 1)]

    if not PrizeRepository.try_decrement(prize.id):
        logger.info(f"Prize {prize.id} ran out before it could be claimed (campaign {campaign_id})")
        raise PrizesExhaustedError()

    try:
        entry = DrawEntryRepository.create(campaign_id, winner["id"], prize.id)
        if not entry:
            raise RuntimeError("Failed to record draw entry")
    except Exception:
        logger.error(f"Recording winner failed for campaign {campaign_id}, restoring prize {prize.id}")
        try:
            PrizeRepository.restore(prize.id)
        except Exception as restore_error:
            logger.error(f"Could not restore prize {prize.id}, one unit is lost: {restore_error}")
        raise

    prize.remaining_quantity -= 1
    logger.info(
        f"Lucky draw {campaign_id}: customer {winner['id']} won '{prize.name}' "
        f"({prize.remaining_quantity}/{prize.quantity} left)"
    )

    dispatcher = dispatcher or get_notification_dispatcher()
    warning = dispatcher.notify_winner(campaign.store_id, winner, prize.name, campaign.winner_message)
    if warning:
        warning = f"Winner selected but notification failed to send: {warning}"
        logger.warning(warning)

    return DrawResult(prize=prize, customer=winner, entry=entry, notification_warning=warning)
