"""
Closed value sets shared by the API (session types, auth providers,
subscription statuses) and the billing status mapping.
"""
from enum import Enum


class SessionType(str, Enum):
    QUIZ = "quiz"
    FLASHCARD = "flashcard"
    MOCK_EXAM = "mock_exam"
    DAILY_CHALLENGE = "daily_challenge"


class AuthProvider(str, Enum):
    GOOGLE = "google"
    FACEBOOK = "facebook"
    APPLE = "apple"
    EMAIL = "email"


class SubscriptionStatus(str, Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    EXPIRED = "expired"


def parse_enum(enum_cls: type[Enum], value) -> Enum | None:
    """Returns the member whose value equals `value`, or None."""
    try:
        return enum_cls(value)
    except ValueError:
        return None


# Stripe subscription.status -> local status
_STRIPE_STATUS_MAP: dict[str, SubscriptionStatus] = {
    "active":             SubscriptionStatus.ACTIVE,
    "trialing":           SubscriptionStatus.TRIALING,
    "past_due":           SubscriptionStatus.PAST_DUE,
    "canceled":           SubscriptionStatus.CANCELED,
    "unpaid":             SubscriptionStatus.PAST_DUE,
    "incomplete":         SubscriptionStatus.PAST_DUE,
    "incomplete_expired": SubscriptionStatus.EXPIRED,
}


def map_stripe_status(status: str | None) -> SubscriptionStatus:
    return _STRIPE_STATUS_MAP.get(status or "", SubscriptionStatus.EXPIRED)
