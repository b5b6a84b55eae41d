"""
Reconcile a user's XP and level from the attempt log and closed sessions.

Recomputes XP from scratch (25 per correct answer, 50 per completed session)
and stores it with the matching level. XP is never lowered: the API pays the
completion bonus on every close, including repeat closes that leave no new
session row, so the stored total may legitimately exceed the recount.
Safe to run multiple times (idempotent).

Usage:
    pip install -e .
    SUPABASE_URL=... SUPABASE_SERVICE_KEY=... python backend/scripts/reconcile_xp.py <user_id> [--dry-run]

A .env file in the working directory is picked up too.
"""
import sys

from dotenv import load_dotenv

from app.db import get_client, update_user
from app.engine.levels import calculate_quiz_xp, level_from_xp, title_for_level


PAGE_SIZE = 1000  # Supabase row limit per request


def fetch_all(db, table: str, columns: str, user_id: str) -> list[dict]:
    """Fetch every row of `table` for a user in pages."""
    rows = []
    offset = 0
    while True:
        res = (
            db.table(table)
            .select(columns)
            .eq("user_id", user_id)
            .range(offset, offset + PAGE_SIZE - 1)
            .execute()
        )
        batch = res.data or []
        rows.extend(batch)
        print(f"  fetched {len(rows)} {table} rows...", end="\r")
        if len(batch) < PAGE_SIZE:
            break
        offset += PAGE_SIZE
    print(f"  fetched {len(rows)} {table} rows total          ")
    return rows


def compute_expected_xp(attempts: list[dict], sessions: list[dict], current_xp: int = 0) -> dict:
    """
    XP and level from raw attempt and session rows, floored at `current_xp`.
    `recounted_xp` is the raw recount before the floor.
    """
    correct = sum(1 for a in attempts if a.get("is_correct"))
    closed = sum(1 for s in sessions if s.get("ended_at"))
    quiz = calculate_quiz_xp(correct)
    recounted = quiz["answerXP"] + closed * quiz["bonusXP"]
    xp = max(current_xp or 0, recounted)
    return {
        "correct_answers": correct,
        "completed_sessions": closed,
        "recounted_xp": recounted,
        "xp": xp,
        "level": level_from_xp(xp),
    }


def run(user_id: str, dry_run: bool = False):
    print(f"\n🔍 Reconciling XP for user: {user_id[:8]}...\n")

    db = get_client()

    res = db.table("users").select("id, name, xp, level").eq("id", user_id).execute()
    if not res.data:
        print(f"❌ User not found: {user_id}")
        sys.exit(1)
    user = res.data[0]
    print(f"  Name: {user['name']}")
    print(f"  Current: xp={user.get('xp', 0)} level={user.get('level', 1)}")

    print("\n  Fetching history...")
    attempts = fetch_all(db, "user_progress", "is_correct", user_id)
    sessions = fetch_all(db, "study_sessions", "ended_at", user_id)

    expected = compute_expected_xp(attempts, sessions, current_xp=user.get("xp") or 0)
    print(f"\n  Computed from {len(attempts)} attempts and {len(sessions)} sessions:")
    for k in ("xp", "level"):
        current_val = user.get(k) or 0
        v = expected[k]
        marker = " ✅" if v == current_val else f" 📈 (was {current_val})"
        print(f"    {k}: {v}{marker}")
    print(f"    title: {title_for_level(expected['level'])}")
    if expected["recounted_xp"] < expected["xp"]:
        print(f"    recount: {expected['recounted_xp']} (kept {expected['xp']}: repeat or unmatched closes)")

    if dry_run:
        print("\n  DRY RUN — no changes written.")
        return

    update_user(db, user_id, {"xp": expected["xp"], "level": expected["level"]})
    print(f"\n✅ XP reconciled for {user['name']}!\n")


if __name__ == "__main__":
    load_dotenv()
    args = [a for a in sys.argv[1:] if a != "--dry-run"]
    dry = "--dry-run" in sys.argv

    if not args:
        print("Usage: python backend/scripts/reconcile_xp.py <user_id> [--dry-run]")
        sys.exit(1)

    run(args[0], dry_run=dry)
