from fastapi import APIRouter

from .routes import (
    health,
    loyalty,
    lucky_draw,
    messaging,
    webhooks,
    woocommerce,
)

api_router = APIRouter()

# Health check
api_router.include_router(health.router, tags=["health"])

# Store-scoped dashboard resources
api_router.include_router(lucky_draw.router, prefix="/lucky-draw", tags=["lucky-draw"])
api_router.include_router(loyalty.router, prefix="/loyalty", tags=["loyalty"])
api_router.include_router(messaging.router, prefix="/messaging", tags=["messaging"])
api_router.include_router(woocommerce.router, prefix="/woocommerce", tags=["woocommerce"])

# WordPress plugin (X-API-Key)
api_router.include_router(webhooks.router, prefix="/api/webhook", tags=["webhooks"])

# Scheduler (X-Cron-Secret)
api_router.include_router(messaging.followups_router, prefix="/followups", tags=["followups"])
