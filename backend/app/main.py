"""
SparkyPass — FastAPI backend
"""
import logging
import math
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import jwt
import stripe
from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import (
    Identity, create_access_token, decode_access_token, generate_token,
    hash_password, token_expiry, verify_password,
)
from .billing import (
    construct_event, create_checkout_url, create_customer, create_portal_url,
    get_plans, period_end, retrieve_subscription,
)
from .config import get_settings
from .db import (
    BOOKMARK_TABLES, get_client, get_user, get_user_by_email, get_user_by_username,
    create_user, update_user, update_users_where,
    increment_user_xp, set_user_level,
    insert_progress, list_progress,
    insert_session, close_session, list_recent_sessions,
    find_bookmark, insert_bookmark, list_bookmarks, delete_bookmark,
    insert_quiz_result, list_quiz_results,
    replace_token, find_live_token, delete_tokens_for_user,
    utcnow_iso,
)
from .emails import (
    send_contact_message, send_password_reset_email,
    send_verification_email, send_welcome_trial_email,
)
from .engine.contact import ContactValidationError, clean_submission, is_valid_email
from .engine.levels import (
    XP_REWARDS, check_level_up, level_from_xp, title_for_level, xp_progress,
)
from .engine.rate_limit import FixedWindowRateLimiter, client_key
from .engine.stats import best_percentage, latest_by_category, summarize_attempts
from .engine.streak import compute_streak, parse_study_date
from .engine.subscription import AuthProvider, SubscriptionStatus, map_stripe_status
from .models import (
    BookmarkCreate, CheckoutRequest, ContactForm, EmailRequest,
    FlashcardBookmarkBody, PasswordChange, PasswordReset, ProfileComplete,
    ProfilePatch, ProgressSubmit, QuizResultCreate, Registration, SessionEnd,
    SessionStart, TokenRequest, UsernameSettings, VerifyEmail,
)

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

TRIAL_DAYS = 7
VERIFICATION_TOKEN_HOURS = 24
RESET_TOKEN_HOURS = 1

limiter = Limiter(key_func=get_remote_address)
contact_limiter = FixedWindowRateLimiter()

app = FastAPI(title="SparkyPass API")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)


# ── Errors ────────────────────────────────────────────────────────────────────

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    err = errors[0]
    loc = [str(p) for p in err.get("loc", ()) if p != "body"]
    field = loc[-1] if loc else "body"
    if err.get("type") == "value_error":
        return str(err.get("msg", "")).removeprefix("Value error, ")
    if err.get("type") == "missing":
        return f"Missing required field: {field}"
    if err.get("type") == "json_invalid":
        return "Invalid JSON body"
    return f"Invalid value for {field}"


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/health")
def health():
    try:
        db = get_client()
        db.table("users").select("id").limit(1).execute()
        return {"status": "ok", "db": "ok"}
    except Exception as e:
        logger.error("Health check DB failure: %s", e)
        raise HTTPException(status_code=503, detail="DB unavailable")


# ── Auth ──────────────────────────────────────────────────────────────────────

def get_identity(authorization: Optional[str] = Header(default=None)) -> Identity:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return decode_access_token(authorization.removeprefix("Bearer ").strip())
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.post("/api/register", status_code=201)
@limiter.limit("5/minute")
def register(request: Request, body: Registration, background_tasks: BackgroundTasks):
    db = get_client()
    if get_user_by_email(db, body.email):
        raise HTTPException(status_code=409, detail="An account with this email already exists")

    user_id = str(uuid.uuid4())
    trial_ends_at = datetime.now(timezone.utc) + timedelta(days=TRIAL_DAYS)
    create_user(db, {
        "id": user_id,
        "name": body.name,
        "email": body.email,
        "password_hash": hash_password(body.password),
        "auth_provider": AuthProvider.EMAIL.value,
        "email_verified": False,
        "trial_ends_at": trial_ends_at.isoformat(),
        "subscription_status": SubscriptionStatus.TRIALING.value,
    })

    token = generate_token()
    replace_token(db, "verification", {
        "id": str(uuid.uuid4()),
        "user_id": user_id,
        "token": token,
        "expires_at": token_expiry(VERIFICATION_TOKEN_HOURS),
    })
    verification_url = f"{get_settings().app_base_url}/verify-email?token={token}"
    background_tasks.add_task(send_verification_email, body.email, body.name, verification_url)
    background_tasks.add_task(send_welcome_trial_email, body.email, body.name)

    logger.info("User registered: %s...", user_id[:8])
    return {"success": True, "userId": user_id, "email": body.email}


@app.post("/api/auth/token")
@limiter.limit("10/minute")
def issue_token(request: Request, body: TokenRequest):
    db = get_client()
    user = get_user_by_email(db, body.email)
    if not user or not verify_password(body.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return {"accessToken": create_access_token(user), "tokenType": "bearer"}


@app.post("/api/verify-email")
@limiter.limit("10/minute")
def verify_email(request: Request, body: VerifyEmail):
    db = get_client()
    record = find_live_token(db, "verification", body.token)
    if not record:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    update_user(db, record["user_id"], {"email_verified": True})
    delete_tokens_for_user(db, "verification", record["user_id"])
    logger.info("Email verified for %s...", record["user_id"][:8])
    return {"success": True}


@app.post("/api/verify-email/resend")
@limiter.limit("5/minute")
def resend_verification(request: Request, body: EmailRequest, background_tasks: BackgroundTasks):
    db = get_client()
    user = get_user_by_email(db, body.email)
    if not user:
        # Same answer for unknown addresses, so emails can't be enumerated
        return {"success": True}
    if user.get("email_verified"):
        raise HTTPException(status_code=400, detail="Email is already verified")

    token = generate_token()
    replace_token(db, "verification", {
        "id": str(uuid.uuid4()),
        "user_id": user["id"],
        "token": token,
        "expires_at": token_expiry(VERIFICATION_TOKEN_HOURS),
    })
    verification_url = f"{get_settings().app_base_url}/verify-email?token={token}"
    background_tasks.add_task(send_verification_email, user["email"], user["name"], verification_url)
    return {"success": True}


@app.post("/api/forgot-password")
@limiter.limit("5/minute")
def forgot_password(request: Request, body: EmailRequest, background_tasks: BackgroundTasks):
    if not is_valid_email(body.email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    db = get_client()
    user = get_user_by_email(db, body.email)
    if not user or user.get("auth_provider") != AuthProvider.EMAIL.value:
        return {"success": True}

    token = generate_token()
    replace_token(db, "password_reset", {
        "id": str(uuid.uuid4()),
        "user_id": user["id"],
        "token": token,
        "expires_at": token_expiry(RESET_TOKEN_HOURS),
    })
    reset_url = f"{get_settings().app_base_url}/reset-password?token={token}"
    background_tasks.add_task(send_password_reset_email, user["email"], user["name"], reset_url)
    return {"success": True}


@app.post("/api/reset-password")
@limiter.limit("5/minute")
def reset_password(request: Request, body: PasswordReset):
    db = get_client()
    record = find_live_token(db, "password_reset", body.token)
    if not record:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token. Please request a new one.")
    update_user(db, record["user_id"], {"password_hash": hash_password(body.password)})
    delete_tokens_for_user(db, "password_reset", record["user_id"])
    logger.info("Password reset for %s...", record["user_id"][:8])
    return {"success": True}


# ── Progress ──────────────────────────────────────────────────────────────────

def _award_xp(db, user_id: str, previous_xp: int, amount: int) -> tuple[int, int]:
    """Atomically add XP, then store the level derived from the new total."""
    new_total = increment_user_xp(db, user_id, amount)
    if new_total is None:
        logger.warning("XP award for missing user %s...", user_id[:8])
        new_total = previous_xp + amount
    new_level = level_from_xp(new_total)
    set_user_level(db, user_id, new_level, new_total)
    return new_total, new_level


@app.post("/api/progress")
def record_progress(body: ProgressSubmit, identity: Identity = Depends(get_identity)):
    db = get_client()
    user_id = identity.user_id

    user = get_user(db, user_id)
    previous_xp = (user or {}).get("xp") or 0

    progress_id = str(uuid.uuid4())
    insert_progress(db, {
        "id": progress_id,
        "user_id": user_id,
        "question_id": body.question_id,
        "is_correct": body.is_correct,
        "time_spent_seconds": round(body.time_spent_seconds) if body.time_spent_seconds else None,
        "answered_at": utcnow_iso(),
    })

    xp_earned = 0
    total_xp = previous_xp
    level = level_from_xp(previous_xp)
    level_up = None

    if body.is_correct:
        xp_earned = XP_REWARDS["correct_answer"]
        total_xp, level = _award_xp(db, user_id, previous_xp, xp_earned)
        # Derived from the atomic total so concurrent awards are not double counted
        previous_xp = total_xp - xp_earned
        level_up = check_level_up(previous_xp, total_xp)
        if level_up:
            logger.info("Level up for %s...: %d (%s)", user_id[:8], level_up["newLevel"], level_up["newTitle"])

    return {
        "success": True,
        "progressId": progress_id,
        "xpEarned": xp_earned,
        "previousXP": previous_xp,
        "totalXp": total_xp,
        "level": level,
        "levelUp": level_up,
    }


@app.get("/api/progress/stats")
def progress_stats(identity: Identity = Depends(get_identity)):
    db = get_client()
    user_id = identity.user_id

    midnight = datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
    summary = summarize_attempts(list_progress(db, user_id), since=midnight)
    sessions = list_recent_sessions(db, user_id, limit=5)
    user = get_user(db, user_id) or {}

    return {
        **summary,
        "recentSessions": [
            {
                "id": s["id"],
                "sessionType": s["session_type"],
                "startedAt": s.get("started_at"),
                "endedAt": s.get("ended_at"),
                "xpEarned": s.get("xp_earned") or 0,
            }
            for s in sessions
        ],
        "xp": user.get("xp") or 0,
        "level": user.get("level") or 1,
        "studyStreak": user.get("study_streak") or 0,
    }


# ── Study sessions ────────────────────────────────────────────────────────────

@app.post("/api/sessions")
def start_session(body: SessionStart, identity: Identity = Depends(get_identity)):
    db = get_client()
    session_id = str(uuid.uuid4())
    insert_session(db, {
        "id": session_id,
        "user_id": identity.user_id,
        "session_type": body.session_type.value,
        "category_slug": body.category_slug or None,
        "started_at": utcnow_iso(),
        "xp_earned": 0,
    })
    return {"success": True, "sessionId": session_id}


@app.patch("/api/sessions")
def end_session(body: SessionEnd, identity: Identity = Depends(get_identity)):
    db = get_client()
    user_id = identity.user_id

    closed = close_session(db, user_id, body.session_id, {
        "ended_at": utcnow_iso(),
        "xp_earned": body.xp_earned or 0,
        "questions_answered": body.questions_answered,
        "questions_correct": body.questions_correct,
    })
    if not closed:
        logger.info("Session %s... not open for %s...", body.session_id[:8], user_id[:8])

    user = get_user(db, user_id) or {}
    today = date.today()
    new_streak = compute_streak(
        parse_study_date(user.get("last_study_date")),
        user.get("study_streak") or 0,
        today,
    )

    # Awarded on every close, including repeat closes on the same day
    completion_bonus = XP_REWARDS["session_complete"]
    _award_xp(db, user_id, user.get("xp") or 0, completion_bonus)
    update_user(db, user_id, {"study_streak": new_streak, "last_study_date": today.isoformat()})

    return {"success": True, "completionBonus": completion_bonus, "newStreak": new_streak}


# ── User & profile ────────────────────────────────────────────────────────────

def _require_user(db, user_id: str) -> dict:
    user = get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@app.get("/api/user")
def get_user_summary(identity: Identity = Depends(get_identity)):
    user = _require_user(get_client(), identity.user_id)
    xp = user.get("xp") or 0
    level = user.get("level") or level_from_xp(xp)
    return {
        "name": user.get("name"),
        "username": user.get("username"),
        "xp": xp,
        "level": level,
        "levelTitle": title_for_level(level),
        "xpProgress": xp_progress(xp, level),
        "studyStreak": user.get("study_streak") or 0,
        "targetExamDate": user.get("target_exam_date"),
    }


@app.get("/api/profile")
def get_profile(identity: Identity = Depends(get_identity)):
    user = _require_user(get_client(), identity.user_id)
    return {
        "name": user.get("name"),
        "email": user.get("email"),
        "username": user.get("username"),
        "city": user.get("city"),
        "state": user.get("state"),
        "dateOfBirth": user.get("date_of_birth"),
        "targetExamDate": user.get("target_exam_date"),
        "newsletterOptedIn": bool(user.get("newsletter_opted_in")),
        "xp": user.get("xp") or 0,
        "level": user.get("level") or 1,
        "createdAt": user.get("created_at"),
    }


@app.patch("/api/profile")
def update_profile(body: ProfilePatch, identity: Identity = Depends(get_identity)):
    updates: dict = {}
    if "target_exam_date" in body.model_fields_set:
        updates["target_exam_date"] = body.target_exam_date.isoformat() if body.target_exam_date else None
    if body.newsletter_opted_in is not None:
        updates["newsletter_opted_in"] = body.newsletter_opted_in
    update_user(get_client(), identity.user_id, updates)
    return {"success": True, "message": "Profile updated successfully"}


@app.post("/api/profile")
def complete_profile(body: ProfileComplete, identity: Identity = Depends(get_identity)):
    db = get_client()
    existing = get_user_by_username(db, body.username)
    if existing and existing["id"] != identity.user_id:
        raise HTTPException(status_code=409, detail="Username is already taken")

    update_user(db, identity.user_id, {
        "username": body.username,
        "date_of_birth": body.date_of_birth.isoformat(),
        "city": body.city,
        "state": body.state,
        "target_exam_date": body.target_exam_date.isoformat(),
        "newsletter_opted_in": body.newsletter_opted_in,
    })
    return {"success": True, "message": "Profile updated successfully"}


@app.patch("/api/settings/username")
def update_username(body: UsernameSettings, identity: Identity = Depends(get_identity)):
    db = get_client()
    existing = get_user_by_username(db, body.username)
    if existing and existing["id"] != identity.user_id:
        raise HTTPException(status_code=409, detail="Username is already taken")

    update_user(db, identity.user_id, {
        "name": body.name,
        "username": body.username,
        "city": body.city,
        "state": body.state,
    })
    return {"success": True, "name": body.name, "username": body.username, "city": body.city, "state": body.state}


@app.post("/api/settings/password")
def change_password(body: PasswordChange, identity: Identity = Depends(get_identity)):
    db = get_client()
    user = _require_user(db, identity.user_id)
    if user.get("auth_provider") != AuthProvider.EMAIL.value:
        raise HTTPException(status_code=400, detail="Password changes are not available for OAuth accounts")
    if not user.get("password_hash"):
        raise HTTPException(status_code=400, detail="No password set for this account")
    if not verify_password(body.current_password, user["password_hash"]):
        raise HTTPException(status_code=403, detail="Current password is incorrect")

    update_user(db, identity.user_id, {"password_hash": hash_password(body.new_password)})
    return {"success": True}


# ── Bookmarks ─────────────────────────────────────────────────────────────────

def _create_bookmark(db, kind: str, user_id: str, item_id: str) -> dict:
    existing = find_bookmark(db, kind, user_id, item_id)
    if existing:
        return {"success": True, "bookmarkId": existing["id"], "message": "Bookmark already exists"}

    bookmark_id = str(uuid.uuid4())
    _, column = BOOKMARK_TABLES[kind]
    insert_bookmark(db, kind, {
        "id": bookmark_id,
        "user_id": user_id,
        column: item_id,
        "created_at": utcnow_iso(),
    })
    return {"success": True, "bookmarkId": bookmark_id}


@app.get("/api/bookmarks")
def get_bookmarks(identity: Identity = Depends(get_identity)):
    rows = list_bookmarks(get_client(), "question", identity.user_id)
    return {"bookmarks": [
        {"id": r["id"], "questionId": r["question_id"], "createdAt": r.get("created_at")} for r in rows
    ]}


@app.post("/api/bookmarks")
def add_bookmark(body: BookmarkCreate, identity: Identity = Depends(get_identity)):
    return _create_bookmark(get_client(), "question", identity.user_id, body.question_id)


@app.delete("/api/bookmarks/{bookmark_id}")
def remove_bookmark(bookmark_id: str, identity: Identity = Depends(get_identity)):
    delete_bookmark(get_client(), "question", identity.user_id, bookmark_id=bookmark_id)
    return {"success": True, "message": "Bookmark removed"}


@app.get("/api/flashcard-bookmarks")
def get_flashcard_bookmarks(identity: Identity = Depends(get_identity)):
    rows = list_bookmarks(get_client(), "flashcard", identity.user_id)
    return {"bookmarks": [
        {"id": r["id"], "flashcardId": r["flashcard_id"], "createdAt": r.get("created_at")} for r in rows
    ]}


@app.post("/api/flashcard-bookmarks")
def add_flashcard_bookmark(body: FlashcardBookmarkBody, identity: Identity = Depends(get_identity)):
    return _create_bookmark(get_client(), "flashcard", identity.user_id, body.flashcard_id)


@app.delete("/api/flashcard-bookmarks")
def remove_flashcard_bookmark(body: FlashcardBookmarkBody, identity: Identity = Depends(get_identity)):
    delete_bookmark(get_client(), "flashcard", identity.user_id, item_id=body.flashcard_id)
    return {"success": True, "message": "Bookmark removed"}


# ── Quiz results ──────────────────────────────────────────────────────────────

@app.post("/api/quiz-results")
def save_quiz_result(body: QuizResultCreate, identity: Identity = Depends(get_identity)):
    result_id = str(uuid.uuid4())
    insert_quiz_result(get_client(), {
        "id": result_id,
        "user_id": identity.user_id,
        "category_slug": body.category_slug,
        "difficulty": body.difficulty or None,
        "score": body.score,
        "total_questions": body.total_questions,
        "best_streak": body.best_streak or 0,
        "completed_at": utcnow_iso(),
    })
    return {"success": True, "resultId": result_id}


@app.get("/api/quiz-results")
def latest_quiz_results(identity: Identity = Depends(get_identity)):
    return latest_by_category(list_quiz_results(get_client(), identity.user_id))


@app.get("/api/quiz-results/best")
def best_quiz_result(
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    identity: Identity = Depends(get_identity),
):
    if not category:
        raise HTTPException(status_code=400, detail="category is required")
    results = list_quiz_results(get_client(), identity.user_id, category_slug=category, difficulty=difficulty)
    return {"bestPercentage": best_percentage(results)}


# ── Billing ───────────────────────────────────────────────────────────────────

@app.post("/api/stripe/checkout")
def create_checkout(body: CheckoutRequest, identity: Identity = Depends(get_identity)):
    if body.plan not in get_plans():
        raise HTTPException(status_code=400, detail="Invalid plan")

    db = get_client()
    user = _require_user(db, identity.user_id)
    try:
        customer_id = user.get("stripe_customer_id")
        if not customer_id:
            customer_id = create_customer(user["email"], identity.user_id)
            update_user(db, identity.user_id, {"stripe_customer_id": customer_id})
        url = create_checkout_url(customer_id, body.plan, body.promo_code)
    except stripe.StripeError as e:
        logger.error("Checkout session error for %s...: %s", identity.user_id[:8], e)
        raise HTTPException(status_code=500, detail="Failed to create checkout session")
    return {"url": url}


@app.post("/api/stripe/portal")
def create_portal(identity: Identity = Depends(get_identity)):
    user = get_user(get_client(), identity.user_id)
    if not user or not user.get("stripe_customer_id"):
        raise HTTPException(status_code=404, detail="No billing account found")
    try:
        url = create_portal_url(user["stripe_customer_id"])
    except stripe.StripeError as e:
        logger.error("Portal session error for %s...: %s", identity.user_id[:8], e)
        raise HTTPException(status_code=500, detail="Failed to create portal session")
    return {"url": url}


def _field(obj, key: str):
    return obj[key] if key in obj else None


def _apply_billing_event(event) -> None:
    db = get_client()
    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type == "checkout.session.completed":
        customer_id = _field(obj, "customer")
        if not customer_id:
            return
        subscription_id = _field(obj, "subscription")
        if subscription_id:
            subscription = retrieve_subscription(subscription_id)
            updates = {
                "stripe_subscription_id": subscription_id,
                "subscription_status": SubscriptionStatus.ACTIVE.value,
                "subscription_period_end": period_end(subscription),
            }
        else:
            # One-time (lifetime) purchase: no subscription, no period end
            updates = {
                "subscription_status": SubscriptionStatus.ACTIVE.value,
                "subscription_period_end": None,
            }
        update_users_where(db, "stripe_customer_id", customer_id, updates)

    elif event_type == "customer.subscription.updated":
        update_users_where(db, "stripe_subscription_id", obj["id"], {
            "subscription_status": map_stripe_status(_field(obj, "status")).value,
            "subscription_period_end": period_end(obj),
        })

    elif event_type == "customer.subscription.deleted":
        update_users_where(db, "stripe_subscription_id", obj["id"], {
            "subscription_status": SubscriptionStatus.EXPIRED.value,
            "stripe_subscription_id": None,
        })

    elif event_type == "invoice.payment_failed":
        customer_id = _field(obj, "customer")
        if customer_id:
            update_users_where(db, "stripe_customer_id", customer_id, {
                "subscription_status": SubscriptionStatus.PAST_DUE.value,
            })

    else:
        return

    logger.info("Billing event applied: %s", event_type)


@app.post("/api/webhooks/stripe")
async def stripe_webhook(request: Request):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="Missing signature")

    try:
        event = construct_event(payload, signature)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        await run_in_threadpool(_apply_billing_event, event)
    except Exception:
        logger.exception("Error processing webhook event %s", event["type"])
        raise HTTPException(status_code=500, detail="Webhook handler failed")

    return {"received": True}


# ── Contact ───────────────────────────────────────────────────────────────────

@app.post("/api/contact")
def contact(request: Request, body: ContactForm, background_tasks: BackgroundTasks):
    client = client_key(request.headers)
    decision = contact_limiter.check(client)
    if not decision.allowed:
        retry_after = decision.reset_in_seconds or 60
        minutes = math.ceil(retry_after / 60)
        return JSONResponse(
            status_code=429,
            content={
                "error": f"Too many messages. Please try again in {minutes} minute{'s' if minutes != 1 else ''}.",
                "retryAfter": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    if body.website:
        # Honeypot field: answer like a success so bots don't adapt
        logger.info("Contact form honeypot filled from %s", client)
        return {"success": True}

    try:
        submission = clean_submission(body.name, body.email, body.message)
    except ContactValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    settings = get_settings()
    background_tasks.add_task(
        send_contact_message,
        settings.contact_email or settings.email_from,
        submission.name, submission.email, submission.message,
        client, utcnow_iso(),
    )
    return {"success": True}
