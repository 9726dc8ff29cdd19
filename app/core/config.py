import os
from functools import lru_cache

from pydantic_settings import BaseSettings


def _load_doppler_secrets():
    """Load secrets from Doppler API into environment variables.

    Must run BEFORE Settings is instantiated so pydantic can read the env vars.
    """
    token = os.getenv("DOPPLER_TOKEN")
    if not token:
        return

    try:
        import requests
        response = requests.get(
            "https://api.doppler.com/v3/configs/config/secrets/download",
            params={"format": "json"},
            auth=(token, ""),
            timeout=30,
        )
        response.raise_for_status()
        secrets = response.json()

        for key, value in secrets.items():
            if key not in os.environ:  # Don't override existing env vars
                os.environ[key] = value

        print(f"Loaded {len(secrets)} secrets from Doppler")
    except Exception as e:
        print(f"Warning: Failed to load Doppler secrets: {e}")


# Load Doppler secrets into environment BEFORE Settings is instantiated
_load_doppler_secrets()


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_publishable_key: str = ""
    supabase_secret_key: str = ""
    supabase_jwt_secret: str = ""  # JWT secret for HS256 token verification
    supabase_schema: str = "public"
    supabase_timeout: int = 20

    # Server
    base_url: str = "http://localhost:8000"
    web_app_url: str = "http://localhost:3000"

    # Customer-facing loyalty card page, linked from stamp messages
    customer_portal_url: str = "https://loopiify.netlify.app"

    # WhatsApp (OnSend)
    onsend_api_url: str = "https://onsend.io/api/v1/send"
    onsend_timeout: float = 30.0
    whatsapp_default_interval: int = 30  # seconds between blaster sends

    # Email (Resend)
    resend_api_key: str = ""
    email_from: str = "Loopiify <noreply@loopiify.app>"

    # Shared secret for the externally scheduled follow-up processor
    cron_secret: str = ""

    # WooCommerce sync
    woocommerce_page_size: int = 100
    woocommerce_timeout: float = 30.0
    customer_upsert_batch_size: int = 50

    # Stores operate in Malaysia; order dates are shown and filtered in UTC+8
    store_timezone_offset_hours: int = 8

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


def get_customer_card_url(store: dict | None) -> str:
    """
    Get the loyalty card URL shown to customers.

    Uses the store's own URL when set, otherwise the shared customer portal.
    """
    base = (store or {}).get("url") or settings.customer_portal_url
    return f"{base.rstrip('/')}/customer"
