from fastapi import Depends, Header, HTTPException, status

from app.core.security import require_auth
from app.repositories.store import StoreRepository


class StoreAccessContext:
    """Context object containing the auth payload, the store row and store_id."""

    def __init__(self, auth: dict, store: dict):
        self.auth = auth
        self.user_id = auth.get("sub")
        self.store = store
        self.store_id = store["id"]


def require_store_access(
    store_id: str,
    auth_payload: dict = Depends(require_auth),
) -> StoreAccessContext:
    """Verify the authenticated merchant owns the store in the path.

    Example:
        @router.get("/{store_id}/campaigns")
        def list_campaigns(ctx: StoreAccessContext = Depends(require_store_access)):
            # ctx.store_id, ctx.store available
            pass
    """
    user_id = auth_payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing sub claim"
        )

    store = StoreRepository.get_by_id(store_id)
    # Same answer for missing and foreign stores
    if not store or store.get("user_id") != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found"
        )

    return StoreAccessContext(auth=auth_payload, store=store)


def require_webhook_store(x_api_key: str | None = Header(default=None)) -> dict:
    """Resolve the store of a WordPress plugin webhook from its X-API-Key."""
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-API-Key header"
        )

    store = StoreRepository.get_by_webhook_key(x_api_key)
    if not store:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )
    return store
