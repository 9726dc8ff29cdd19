from fastapi import APIRouter, Depends

from app.api.deps import to_http_exception
from app.core.permissions import StoreAccessContext, require_store_access
from app.domain.errors import LoopiifyError
from app.domain.schemas import WooCommerceSyncRequest, WooCommerceSyncResponse
from app.repositories.store import StoreRepository
from app.services.woocommerce import create_woocommerce_client, sync_customers

router = APIRouter()


@router.post("/{store_id}/sync", response_model=WooCommerceSyncResponse)
def sync_store_customers(
    credentials: WooCommerceSyncRequest | None = None,
    ctx: StoreAccessContext = Depends(require_store_access),
):
    """Import customers and their order totals from the store's WooCommerce site.

    Credentials in the body override (and replace) the ones saved on the store.
    """
    overrides = credentials.model_dump(exclude_none=True) if credentials else {}
    try:
        client = create_woocommerce_client(ctx.store, overrides)
        synced = sync_customers(ctx.store_id, client)
    except LoopiifyError as e:
        raise to_http_exception(e)

    if overrides:
        StoreRepository.update(
            ctx.store_id,
            **{f"woocommerce_{key}": value for key, value in overrides.items()},
        )
    return WooCommerceSyncResponse(synced=synced)
