from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_dispatcher, to_http_exception
from app.core.permissions import StoreAccessContext, require_store_access
from app.domain.errors import LoopiifyError
from app.domain.schemas import (
    AccrualResponse,
    LoyaltyCardResponse,
    PointsProgramConfig,
    PointsProgramResponse,
    ProgramStatusResponse,
    ProgramToggle,
    PurchaseCreate,
    StampProgramConfig,
    StampProgramResponse,
)
from app.repositories.customer import CustomerRepository
from app.repositories.loyalty_program import LoyaltyProgramRepository
from app.services import accrual, loyalty_programs
from app.services.notifications import NotificationDispatcher

router = APIRouter()


def _require_customer(customer_id: str, store_id: str) -> dict:
    customer = CustomerRepository.get_by_id(customer_id)
    if not customer or customer.get("store_id") != store_id:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


# ============================================
# Program setup
# ============================================

@router.get("/{store_id}/stamps", response_model=Optional[StampProgramResponse])
def get_stamp_program(ctx: StoreAccessContext = Depends(require_store_access)):
    """The store's stamp card setup, or null if it was never configured."""
    return LoyaltyProgramRepository.get_config(ctx.store_id, "stamps")


@router.put("/{store_id}/stamps", response_model=StampProgramResponse)
def save_stamp_program(
    config: StampProgramConfig,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    try:
        return loyalty_programs.save_stamp_program(ctx.store_id, config)
    except LoopiifyError as e:
        raise to_http_exception(e)


@router.get("/{store_id}/points", response_model=Optional[PointsProgramResponse])
def get_points_program(ctx: StoreAccessContext = Depends(require_store_access)):
    """The store's points setup, or null if it was never configured."""
    return LoyaltyProgramRepository.get_config(ctx.store_id, "points")


@router.put("/{store_id}/points", response_model=PointsProgramResponse)
def save_points_program(
    config: PointsProgramConfig,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    try:
        return loyalty_programs.save_points_program(ctx.store_id, config)
    except LoopiifyError as e:
        raise to_http_exception(e)


@router.get("/{store_id}/programs", response_model=ProgramStatusResponse)
def get_program_status(ctx: StoreAccessContext = Depends(require_store_access)):
    return loyalty_programs.get_program_status(ctx.store_id)


@router.post("/{store_id}/programs", response_model=ProgramStatusResponse)
def toggle_program(
    toggle: ProgramToggle,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    """Enable or disable a program. Enabling one disables the other."""
    try:
        return loyalty_programs.set_program_active(ctx.store_id, toggle.program, toggle.enabled)
    except LoopiifyError as e:
        raise to_http_exception(e)


# ============================================
# Purchases and cards
# ============================================

@router.post("/{store_id}/purchases", response_model=AccrualResponse)
def record_purchase(
    purchase: PurchaseCreate,
    ctx: StoreAccessContext = Depends(require_store_access),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Credit an in-store purchase entered from the dashboard."""
    _require_customer(purchase.customer_id, ctx.store_id)
    result = accrual.record_purchase(
        purchase.customer_id, ctx.store_id, purchase.order_amount, dispatcher=dispatcher
    )
    return AccrualResponse(**asdict(result))


@router.get("/{store_id}/cards/{customer_id}", response_model=LoyaltyCardResponse)
def get_loyalty_card(
    customer_id: str,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    _require_customer(customer_id, ctx.store_id)
    return accrual.get_card(ctx.store_id, customer_id)
