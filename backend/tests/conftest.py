"""
Shared fixtures for the API tests: every DB, billing and email helper imported
by app.main is patched, so no Supabase, Stripe or Resend calls are made.
"""
import os
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("JWT_SECRET", "test-secret-with-at-least-32-bytes!!")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("CONTACT_EMAIL", "support@example.com")

PATCHED = [
    # db
    "get_client", "get_user", "get_user_by_email", "get_user_by_username",
    "create_user", "update_user", "update_users_where",
    "increment_user_xp", "set_user_level",
    "insert_progress", "list_progress",
    "insert_session", "close_session", "list_recent_sessions",
    "find_bookmark", "insert_bookmark", "list_bookmarks", "delete_bookmark",
    "insert_quiz_result", "list_quiz_results",
    "replace_token", "find_live_token", "delete_tokens_for_user",
    # billing
    "construct_event", "create_checkout_url", "create_customer", "create_portal_url",
    "retrieve_subscription",
    # email
    "send_verification_email", "send_welcome_trial_email",
    "send_password_reset_email", "send_contact_message",
]


@pytest.fixture
def app_client():
    """
    Yields a dict with the TestClient and a mock handle per patched helper.
    """
    patches = {name: patch(f"app.main.{name}") for name in PATCHED}
    started = {k: p.start() for k, p in patches.items()}

    # Sensible defaults
    started["get_client"].return_value = MagicMock()
    started["get_user"].return_value = None
    started["get_user_by_email"].return_value = None
    started["get_user_by_username"].return_value = None
    started["increment_user_xp"].return_value = None
    started["close_session"].return_value = 1
    started["update_users_where"].return_value = 1
    started["list_progress"].return_value = []
    started["list_recent_sessions"].return_value = []
    started["find_bookmark"].return_value = None
    started["list_bookmarks"].return_value = []
    started["list_quiz_results"].return_value = []
    started["find_live_token"].return_value = None

    from app.main import app, contact_limiter, limiter
    limiter.reset()
    contact_limiter.reset()
    with TestClient(app, raise_server_exceptions=False) as c:
        yield {"client": c, **started}

    for p in patches.values():
        p.stop()


def auth_headers(user_id: str, **claims) -> dict:
    from app.auth import create_access_token
    return {"Authorization": f"Bearer {create_access_token({'id': user_id, **claims})}"}


def make_user(user_id: str = "user-1234-abcd", **overrides) -> dict:
    user = {
        "id": user_id,
        "name": "Sam Sparks",
        "email": "sam@example.com",
        "username": "samsparks",
        "password_hash": None,
        "auth_provider": "email",
        "email_verified": True,
        "city": "Austin",
        "state": "TX",
        "date_of_birth": "1990-05-01",
        "target_exam_date": "2026-12-01",
        "newsletter_opted_in": False,
        "xp": 0,
        "level": 1,
        "study_streak": 0,
        "last_study_date": None,
        "subscription_status": "trialing",
        "stripe_customer_id": None,
        "stripe_subscription_id": None,
        "created_at": "2026-01-01T00:00:00+00:00",
    }
    user.update(overrides)
    return user
