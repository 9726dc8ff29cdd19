"""
Stamp and points accrual for qualifying purchases.

recordPurchase is not idempotent: every call credits the card. The order
webhook only calls it on the transition to "completed", and nothing here
deduplicates by order id.

A store without an active program is not an error, the purchase is simply
not credited.
"""

import logging
import math
from datetime import date
from decimal import Decimal
from typing import Optional

from app.domain.models import AccrualResult, PointsProgram, StampProgram, is_within_window
from app.repositories.customer import CustomerRepository
from app.repositories.loyalty_card import LoyaltyCardRepository
from app.repositories.loyalty_program import LoyaltyProgramRepository
from app.services.notifications import NotificationDispatcher, get_notification_dispatcher

logger = logging.getLogger(__name__)


def points_for(order_amount: float, points_per_rm: float) -> int:
    """floor(order_amount * points_per_rm), computed in decimal so 19.99 * 100 gives 1999."""
    return math.floor(Decimal(str(order_amount)) * Decimal(str(points_per_rm)))


def record_purchase(
    customer_id: str,
    store_id: str,
    order_amount: float,
    dispatcher: Optional[NotificationDispatcher] = None,
    today: Optional[date] = None,
) -> AccrualResult:
    """Credit one purchase to the customer's loyalty card.

    Stamp programs add one stamp, points programs add
    floor(order_amount * points_per_rm). Purchases below the program's
    minimum spend, outside its date window, or in a store without an
    active program leave the card untouched.

    The stamp count is never capped: reaching total_stamps sets
    reward_earned, and later purchases keep counting.
    """
    program = LoyaltyProgramRepository.get_active_program(store_id)
    if program is None:
        return AccrualResult(changed=False)

    today = today or date.today()
    if not is_within_window(program, today):
        logger.info(f"Loyalty program {program.id} for store {store_id} is outside its date window")
        return AccrualResult(changed=False, program=program.kind)

    if order_amount < program.min_spend:
        return AccrualResult(changed=False, program=program.kind)

    if isinstance(program, StampProgram):
        card = LoyaltyCardRepository.increment(store_id, customer_id, stamps=1)
        stamps = int(card["stamps"])
        result = AccrualResult(
            changed=True,
            program="stamps",
            delta=1,
            stamps=stamps,
            points=int(card.get("points") or 0),
            total_stamps=program.total_stamps,
            reward_earned=stamps >= program.total_stamps,
        )
    else:
        earned = points_for(order_amount, program.points_per_rm)
        if earned <= 0:
            return AccrualResult(changed=False, program="points")
        card = LoyaltyCardRepository.increment(store_id, customer_id, points=earned)
        result = AccrualResult(
            changed=True,
            program="points",
            delta=earned,
            stamps=int(card.get("stamps") or 0),
            points=int(card["points"]),
        )

    logger.info(
        f"Accrued {result.delta} {result.program} for customer {customer_id} in store {store_id} "
        f"(stamps={result.stamps}, points={result.points}, reward_earned={result.reward_earned})"
    )

    _notify(store_id, customer_id, program, result, dispatcher)
    return result


def _notify(
    store_id: str,
    customer_id: str,
    program: StampProgram | PointsProgram,
    result: AccrualResult,
    dispatcher: Optional[NotificationDispatcher],
) -> None:
    try:
        customer = CustomerRepository.get_by_id(customer_id)
        if not customer:
            logger.warning(f"Customer {customer_id} not found, skipping accrual notification")
            return
        dispatcher = dispatcher or get_notification_dispatcher()
        if isinstance(program, StampProgram):
            dispatcher.notify_stamp_earned(store_id, customer, result.stamps, program.total_stamps)
        else:
            dispatcher.notify_points_earned(store_id, customer, result.delta, result.points)
    except Exception as e:
        # Best-effort: the card is already updated
        logger.error(f"Accrual notification for customer {customer_id} failed: {e}")


def get_card(store_id: str, customer_id: str) -> dict:
    """A customer's card with reward_earned derived from the current program."""
    card = LoyaltyCardRepository.get(store_id, customer_id) or {}
    program = LoyaltyProgramRepository.get_active_program(store_id)
    stamps = int(card.get("stamps") or 0)
    total_stamps = program.total_stamps if isinstance(program, StampProgram) else None
    return {
        "customer_id": customer_id,
        "store_id": store_id,
        "stamps": stamps,
        "points": int(card.get("points") or 0),
        "total_stamps": total_stamps,
        "reward_earned": total_stamps is not None and stamps >= total_stamps,
        "updated_at": card.get("updated_at"),
    }
