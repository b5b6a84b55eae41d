"""
Credentials and bearer tokens.

Access tokens are HS256 JWTs carrying the identity bundle the routes need,
so handlers never have to re-read the user row just to authorise a call.
"""
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import argon2
import jwt

from .config import get_settings

_hasher = argon2.PasswordHasher()


@dataclass
class Identity:
    user_id: str
    email_verified: bool = False
    profile_complete: bool = False
    subscription_status: str | None = None
    trial_ends_at: str | None = None
    subscription_period_end: str | None = None


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """True if the password matches. Never raises on mismatch."""
    if not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def generate_token() -> str:
    """Random single-use token for email verification and password resets."""
    return secrets.token_hex(32)


def token_expiry(hours: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(hours=hours)).isoformat()


def is_profile_complete(user: dict) -> bool:
    return bool(
        user.get("city") and user.get("state")
        and user.get("date_of_birth") and user.get("target_exam_date")
    )


def _secret() -> str:
    secret = get_settings().jwt_secret
    if not secret:
        raise RuntimeError("JWT_SECRET is not configured")
    return secret


def create_access_token(user: dict) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user["id"],
        "emailVerified": bool(user.get("email_verified")),
        "profileComplete": is_profile_complete(user),
        "subscriptionStatus": user.get("subscription_status"),
        "trialEndsAt": user.get("trial_ends_at"),
        "subscriptionPeriodEnd": user.get("subscription_period_end"),
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_ttl_minutes),
    }
    return jwt.encode(payload, _secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Identity:
    """
    Raises jwt.InvalidTokenError if the token is invalid, expired or has no subject.
    """
    settings = get_settings()
    claims = jwt.decode(token, _secret(), algorithms=[settings.jwt_algorithm])
    user_id = claims.get("sub")
    if not user_id:
        raise jwt.InvalidTokenError("Token has no subject")
    return Identity(
        user_id=str(user_id),
        email_verified=bool(claims.get("emailVerified")),
        profile_complete=bool(claims.get("profileComplete")),
        subscription_status=claims.get("subscriptionStatus"),
        trial_ends_at=claims.get("trialEndsAt"),
        subscription_period_end=claims.get("subscriptionPeriodEnd"),
    )
