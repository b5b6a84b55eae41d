from datetime import datetime, timezone
from functools import lru_cache

from supabase import create_client, Client

from .config import get_settings

# bookmark kind -> (table, item column)
BOOKMARK_TABLES: dict[str, tuple[str, str]] = {
    "question": ("bookmarks", "question_id"),
    "flashcard": ("flashcard_bookmarks", "flashcard_id"),
}

TOKEN_TABLES: dict[str, str] = {
    "verification": "verification_tokens",
    "password_reset": "password_reset_tokens",
}


@lru_cache(maxsize=1)
def get_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Users ─────────────────────────────────────────────────────────────────────

def get_user(db: Client, user_id: str) -> dict | None:
    res = db.table("users").select("*").eq("id", user_id).limit(1).execute()
    return res.data[0] if res.data else None


def get_user_by_email(db: Client, email: str) -> dict | None:
    res = db.table("users").select("*").eq("email", email.lower()).limit(1).execute()
    return res.data[0] if res.data else None


def get_user_by_username(db: Client, username: str) -> dict | None:
    res = db.table("users").select("id").eq("username", username).limit(1).execute()
    return res.data[0] if res.data else None


def create_user(db: Client, row: dict) -> None:
    db.table("users").insert(row).execute()


def update_user(db: Client, user_id: str, updates: dict) -> None:
    db.table("users").update({**updates, "updated_at": utcnow_iso()}).eq("id", user_id).execute()


def update_users_where(db: Client, column: str, value: str, updates: dict) -> int:
    """Update every user whose `column` equals `value`. Returns rows touched."""
    res = db.table("users").update({**updates, "updated_at": utcnow_iso()}).eq(column, value).execute()
    return len(res.data or [])


def increment_user_xp(db: Client, user_id: str, amount: int) -> int | None:
    """
    Atomically add `amount` to users.xp and return the new total
    (None when the user row does not exist).
    """
    res = db.rpc("increment_user_xp", {"p_user_id": user_id, "p_amount": amount}).execute()
    data = res.data
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = data.get("increment_user_xp")
    return int(data) if data is not None else None


def set_user_level(db: Client, user_id: str, level: int, xp: int) -> None:
    """
    Store the level derived from `xp`, but only while users.xp still equals
    `xp`; a concurrent award will write its own, newer level.
    """
    db.table("users").update({"level": level}).eq("id", user_id).eq("xp", xp).execute()


# ── Attempts ──────────────────────────────────────────────────────────────────

def insert_progress(db: Client, row: dict) -> None:
    db.table("user_progress").insert(row).execute()


def list_progress(db: Client, user_id: str) -> list[dict]:
    res = (
        db.table("user_progress")
        .select("question_id, is_correct, answered_at")
        .eq("user_id", user_id)
        .execute()
    )
    return res.data or []


# ── Study sessions ────────────────────────────────────────────────────────────

def insert_session(db: Client, row: dict) -> None:
    db.table("study_sessions").insert(row).execute()


def close_session(db: Client, user_id: str, session_id: str, updates: dict) -> int:
    """Close an open session owned by `user_id`. Returns rows touched (0 or 1)."""
    res = (
        db.table("study_sessions")
        .update(updates)
        .eq("id", session_id)
        .eq("user_id", user_id)
        .is_("ended_at", "null")
        .execute()
    )
    return len(res.data or [])


def list_recent_sessions(db: Client, user_id: str, limit: int = 5) -> list[dict]:
    res = (
        db.table("study_sessions")
        .select("id, session_type, started_at, ended_at, xp_earned")
        .eq("user_id", user_id)
        .order("started_at", desc=True)
        .limit(limit)
        .execute()
    )
    return res.data or []


# ── Bookmarks ─────────────────────────────────────────────────────────────────

def find_bookmark(db: Client, kind: str, user_id: str, item_id: str) -> dict | None:
    table, column = BOOKMARK_TABLES[kind]
    res = (
        db.table(table)
        .select("id")
        .eq("user_id", user_id)
        .eq(column, item_id)
        .limit(1)
        .execute()
    )
    return res.data[0] if res.data else None


def insert_bookmark(db: Client, kind: str, row: dict) -> None:
    table, _ = BOOKMARK_TABLES[kind]
    db.table(table).insert(row).execute()


def list_bookmarks(db: Client, kind: str, user_id: str) -> list[dict]:
    table, column = BOOKMARK_TABLES[kind]
    res = (
        db.table(table)
        .select(f"id, {column}, created_at")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return res.data or []


def delete_bookmark(db: Client, kind: str, user_id: str, *, bookmark_id: str | None = None,
                    item_id: str | None = None) -> None:
    table, column = BOOKMARK_TABLES[kind]
    query = db.table(table).delete().eq("user_id", user_id)
    if bookmark_id is not None:
        query = query.eq("id", bookmark_id)
    if item_id is not None:
        query = query.eq(column, item_id)
    query.execute()


# ── Quiz results ──────────────────────────────────────────────────────────────

def insert_quiz_result(db: Client, row: dict) -> None:
    db.table("quiz_results").insert(row).execute()


def list_quiz_results(db: Client, user_id: str, category_slug: str | None = None,
                      difficulty: str | None = None) -> list[dict]:
    query = db.table("quiz_results").select("*").eq("user_id", user_id)
    if category_slug:
        query = query.eq("category_slug", category_slug)
    if difficulty:
        query = query.eq("difficulty", difficulty)
    res = query.order("completed_at", desc=True).execute()
    return res.data or []


# ── Single-use tokens ─────────────────────────────────────────────────────────

def replace_token(db: Client, kind: str, row: dict) -> None:
    """Drop the user's previous tokens of this kind, then store the new one."""
    table = TOKEN_TABLES[kind]
    db.table(table).delete().eq("user_id", row["user_id"]).execute()
    db.table(table).insert(row).execute()


def find_live_token(db: Client, kind: str, token: str) -> dict | None:
    table = TOKEN_TABLES[kind]
    res = (
        db.table(table)
        .select("*")
        .eq("token", token)
        .gt("expires_at", utcnow_iso())
        .limit(1)
        .execute()
    )
    return res.data[0] if res.data else None


def delete_tokens_for_user(db: Client, kind: str, user_id: str) -> None:
    db.table(TOKEN_TABLES[kind]).delete().eq("user_id", user_id).execute()
