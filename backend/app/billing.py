"""
Stripe plumbing: plans, checkout and portal sessions, webhook verification.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import stripe

from .config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plan:
    name: str
    price_id: str
    mode: str  # 'subscription' | 'payment'


def _client() -> None:
    stripe.api_key = get_settings().stripe_secret_key


def get_plans() -> dict[str, Plan]:
    s = get_settings()
    return {
        "quarterly": Plan("SparkyPass Quarterly", s.stripe_quarterly_price_id, "subscription"),
        "yearly":    Plan("SparkyPass Yearly",    s.stripe_yearly_price_id,    "subscription"),
        "lifetime":  Plan("SparkyPass Lifetime",  s.stripe_lifetime_price_id,  "payment"),
    }


def create_customer(email: str, user_id: str) -> str:
    _client()
    customer = stripe.Customer.create(email=email, metadata={"userId": user_id})
    return customer["id"]


def _find_promotion_code(code: str) -> str | None:
    try:
        codes = stripe.PromotionCode.list(code=code, active=True, limit=1)
    except stripe.StripeError as e:
        logger.warning("Promotion code lookup failed for %r: %s", code, e)
        return None
    return codes["data"][0]["id"] if codes["data"] else None


def create_checkout_url(customer_id: str, plan_key: str, promo_code: str | None = None) -> str:
    _client()
    plan = get_plans()[plan_key]
    base_url = get_settings().app_base_url
    params: dict = {
        "customer": customer_id,
        "line_items": [{"price": plan.price_id, "quantity": 1}],
        "mode": plan.mode,
        "success_url": f"{base_url}/pricing/success?session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base_url}/pricing",
        "metadata": {"plan": plan_key},
    }
    promotion_code_id = _find_promotion_code(promo_code) if promo_code else None
    if promotion_code_id:
        params["discounts"] = [{"promotion_code": promotion_code_id}]
    else:
        params["allow_promotion_codes"] = True

    session = stripe.checkout.Session.create(**params)
    return session["url"]


def create_portal_url(customer_id: str) -> str:
    _client()
    session = stripe.billing_portal.Session.create(
        customer=customer_id,
        return_url=f"{get_settings().app_base_url}/settings",
    )
    return session["url"]


def construct_event(payload: bytes, signature: str):
    """Raises stripe.SignatureVerificationError or ValueError on a bad payload."""
    return stripe.Webhook.construct_event(payload, signature, get_settings().stripe_webhook_secret)


def period_end(subscription) -> str | None:
    """Current period end as ISO-8601; newer API versions keep it on the first item."""
    try:
        ts = subscription["items"]["data"][0]["current_period_end"]
    except (KeyError, IndexError, TypeError):
        ts = subscription["current_period_end"] if "current_period_end" in subscription else None
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def retrieve_subscription(subscription_id: str):
    _client()
    return stripe.Subscription.retrieve(subscription_id)
