from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, datetime


DEFAULT_WINNER_MESSAGE = "Congratulations {first_name}! You've won {prize_name} in our lucky draw!"


# ============================================
# Customer Schemas
# ============================================

class CustomerResponse(BaseModel):
    id: str
    store_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: str
    total_spent: float = 0
    orders_count: int = 0
    last_order_date: Optional[datetime] = None
    last_order_amount: Optional[float] = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================
# Lucky Draw Schemas
# ============================================

class PrizeCreate(BaseModel):
    name: str
    description: str = ""
    quantity: int = 1
    probability: float = Field(..., ge=0, le=100)


class PrizeResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    quantity: int
    remaining_quantity: int
    probability: float


class CampaignCreate(BaseModel):
    name: str
    description: str = ""
    min_spend: float = Field(default=0, ge=0)
    start_date: date
    end_date: date
    winner_message: str = DEFAULT_WINNER_MESSAGE
    prizes: List[PrizeCreate] = Field(..., min_length=1)


class CampaignResponse(BaseModel):
    id: str
    store_id: str
    name: str
    description: Optional[str] = None
    min_spend: float
    start_date: date
    end_date: date
    is_active: bool = True
    is_ended: bool = False
    winner_message: Optional[str] = None
    prizes: List[PrizeResponse] = []
    created_at: Optional[datetime] = None


class DrawEntryResponse(BaseModel):
    id: str
    campaign_id: str
    customer_id: str
    prize_id: str
    is_winner: bool = True
    created_at: Optional[datetime] = None


class DrawResponse(BaseModel):
    """Outcome of one spin of the wheel."""
    entry_id: str
    prize: PrizeResponse
    winner: CustomerResponse
    message: str
    notification_warning: Optional[str] = None


# ============================================
# Loyalty Program Schemas
# ============================================

class StampProgramConfig(BaseModel):
    promotion_name: str
    tagline: Optional[str] = ""
    min_spend_per_stamp: float = Field(default=0, ge=0)
    total_stamps: int = Field(..., gt=0)
    reward: Optional[str] = ""
    terms: Optional[str] = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class StampProgramResponse(StampProgramConfig):
    id: str
    store_id: str
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PointsProgramConfig(BaseModel):
    points_per_rm: float = Field(..., ge=0)
    min_spend: float = Field(default=0, ge=0)
    reward_description: Optional[str] = ""
    terms: Optional[str] = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class PointsProgramResponse(PointsProgramConfig):
    id: str
    store_id: str
    is_active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProgramStatusResponse(BaseModel):
    points_enabled: bool
    stamps_enabled: bool


class ProgramToggle(BaseModel):
    program: Literal["points", "stamps"]
    enabled: bool


class PurchaseCreate(BaseModel):
    customer_id: str
    order_amount: float = Field(..., ge=0)


class AccrualResponse(BaseModel):
    changed: bool
    program: Optional[Literal["stamps", "points"]] = None
    delta: int = 0
    stamps: int = 0
    points: int = 0
    total_stamps: Optional[int] = None
    reward_earned: bool = False


class LoyaltyCardResponse(BaseModel):
    customer_id: str
    store_id: str
    stamps: int = 0
    points: int = 0
    total_stamps: Optional[int] = None
    reward_earned: bool = False
    updated_at: Optional[datetime] = None


# ============================================
# Order Webhook Schemas (WordPress plugin payload)
# ============================================

class WebhookCustomer(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class WebhookOrderItem(BaseModel):
    name: Optional[str] = None
    quantity: int = 1
    total: Optional[float] = None


class WebhookOrder(BaseModel):
    total: float
    currency: str = "MYR"
    status: str
    date_created: Optional[datetime] = None
    items: List[WebhookOrderItem] = []


class OrderWebhookPayload(BaseModel):
    order_id: int | str
    customer: WebhookCustomer
    order: WebhookOrder


class OrderWebhookResponse(BaseModel):
    processed: bool
    reason: Optional[str] = None
    customer_id: Optional[str] = None
    is_new_customer: bool = False
    accrual: Optional[AccrualResponse] = None


# ============================================
# Messaging Schemas
# ============================================

class WhatsAppBlastRequest(BaseModel):
    message: str = Field(..., min_length=1)
    start_date: Optional[date] = None  # last order date window, store local time
    end_date: Optional[date] = None


class EmailBlastRequest(BaseModel):
    subject: str = Field(..., min_length=1)
    html: str = Field(..., min_length=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class BlastResponse(BaseModel):
    total: int
    sent: int
    failed: int


class BlastQueuedResponse(BaseModel):
    total: int
    status: str = "queued"


class IntervalUpdate(BaseModel):
    interval: Literal[30, 60]


class FollowupProcessResponse(BaseModel):
    processed: int
    sent: int
    failed: int


# ============================================
# WooCommerce Schemas
# ============================================

class WooCommerceSyncRequest(BaseModel):
    """Credentials override; falls back to the ones saved on the store."""
    url: Optional[str] = None
    consumer_key: Optional[str] = None
    consumer_secret: Optional[str] = None


class WooCommerceSyncResponse(BaseModel):
    synced: int
