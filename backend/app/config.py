import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv


def _csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_service_key: str = ""
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60 * 24 * 7
    app_base_url: str = "http://localhost:3000"
    allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    resend_api_key: str = ""
    email_from: str = "SparkyPass <onboarding@resend.dev>"
    contact_email: str = ""
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_quarterly_price_id: str = ""
    stripe_yearly_price_id: str = ""
    stripe_lifetime_price_id: str = ""


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    env = os.environ
    return Settings(
        supabase_url=env.get("SUPABASE_URL", ""),
        supabase_service_key=env.get("SUPABASE_SERVICE_KEY", ""),
        jwt_secret=env.get("JWT_SECRET", ""),
        access_token_ttl_minutes=int(env.get("ACCESS_TOKEN_TTL_MINUTES", 60 * 24 * 7)),
        app_base_url=env.get("APP_BASE_URL", "http://localhost:3000").rstrip("/"),
        allowed_origins=_csv(env.get("ALLOWED_ORIGINS", "http://localhost:3000")),
        resend_api_key=env.get("RESEND_API_KEY", ""),
        email_from=env.get("EMAIL_FROM", "SparkyPass <onboarding@resend.dev>"),
        contact_email=env.get("CONTACT_EMAIL", ""),
        stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
        stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
        stripe_quarterly_price_id=env.get("STRIPE_QUARTERLY_PRICE_ID", ""),
        stripe_yearly_price_id=env.get("STRIPE_YEARLY_PRICE_ID", ""),
        stripe_lifetime_price_id=env.get("STRIPE_LIFETIME_PRICE_ID", ""),
    )
