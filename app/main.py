import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from database import init_db
from app.api import api_router
from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()
    yield
    # Shutdown


logger = logging.getLogger(__name__)


class DynamicCORSMiddleware(BaseHTTPMiddleware):
    """CORS middleware: dashboard and customer portal origins in production, any origin in development."""

    def __init__(self, app, allowed_origins: set[str]):
        super().__init__(app)
        self.allowed_origins = {o.rstrip("/") for o in allowed_origins if o}

    async def dispatch(self, request: Request, call_next):
        origin = request.headers.get("origin")
        env = os.getenv("ENVIRONMENT", "development")

        # Handle preflight requests
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)

        if origin:
            if env != "production" or origin.rstrip("/") in self.allowed_origins:
                response.headers["Access-Control-Allow-Origin"] = origin
                response.headers["Access-Control-Allow-Credentials"] = "true"
            else:
                logger.warning(f"CORS rejected - Origin '{origin}' is not allowed")

        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS, PATCH"
        response.headers["Access-Control-Allow-Headers"] = (
            "Content-Type, Authorization, X-Requested-With, X-API-Key, X-Cron-Secret"
        )

        return response


def create_app() -> FastAPI:
    app = FastAPI(
        title="Loopiify",
        description="Lucky draw, stamp card and points API for WooCommerce stores",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        DynamicCORSMiddleware,
        allowed_origins={settings.web_app_url, settings.customer_portal_url},
    )

    # Include all routes
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
