"""
Progress and quiz-result aggregation.

These run over the user's full row set in application code; per-user row
counts are small.
"""
import re
from datetime import datetime, timezone

# Question id prefix -> category slug
CATEGORY_PREFIXES = [
    ("LC-", "load-calculations"),
    ("GB-", "grounding-bonding"),
    ("SV-", "services"),
]
DEFAULT_CATEGORY = "services"
CATEGORY_ORDER = ["load-calculations", "grounding-bonding", "services"]

# Fractional seconds followed by an offset or end of string
_FRACTION_RE = re.compile(r"(\.\d+)(?=[+-]\d\d:?\d\d$|$)")


def category_for_question(question_id: str) -> str:
    for prefix, slug in CATEGORY_PREFIXES:
        if question_id.startswith(prefix):
            return slug
    return DEFAULT_CATEGORY


def percentage(part: int, whole: int) -> int:
    """Rounded percentage, 0 when there is nothing to divide by."""
    if not whole:
        return 0
    return round(part / whole * 100)


def _parse_ts(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).replace("Z", "+00:00")
    # PostgREST trims trailing zeros; fromisoformat before 3.11 wants 3 or 6 digits
    text = _FRACTION_RE.sub(lambda m: m.group(1)[:7].ljust(7, "0"), text, count=1)
    return datetime.fromisoformat(text)


def summarize_attempts(attempts: list[dict], since: datetime | None = None) -> dict:
    """
    Aggregate attempt rows (question_id, is_correct, answered_at).
    `since` is a timezone-aware start of "today" for the answered-today
    count; naive stored timestamps are read as UTC.
    """
    total = len(attempts)
    correct = sum(1 for a in attempts if a.get("is_correct"))
    unique = len({a["question_id"] for a in attempts})

    answered_today = 0
    if since is not None:
        for a in attempts:
            answered_at = _parse_ts(a.get("answered_at"))
            if answered_at is None:
                continue
            if answered_at.tzinfo is None:
                answered_at = answered_at.replace(tzinfo=timezone.utc)
            if answered_at >= since:
                answered_today += 1

    by_category = {slug: {"answered": 0, "correct": 0} for slug in CATEGORY_ORDER}
    for a in attempts:
        bucket = by_category[category_for_question(a["question_id"])]
        bucket["answered"] += 1
        if a.get("is_correct"):
            bucket["correct"] += 1

    return {
        "totalAnswered": total,
        "uniqueQuestionsAnswered": unique,
        "correctCount": correct,
        "accuracy": percentage(correct, total),
        "answeredToday": answered_today,
        "categoryStats": [
            {
                "slug": slug,
                "answered": s["answered"],
                "correct": s["correct"],
                "accuracy": percentage(s["correct"], s["answered"]),
            }
            for slug, s in by_category.items()
        ],
    }


def latest_by_category(results: list[dict]) -> dict[str, dict]:
    """Keep the most recent quiz result per category slug."""
    ordered = sorted(results, key=lambda r: r.get("completed_at") or "", reverse=True)
    latest: dict[str, dict] = {}
    for r in ordered:
        slug = r["category_slug"]
        if slug in latest:
            continue
        latest[slug] = {
            "score": r["score"],
            "totalQuestions": r["total_questions"],
            "percentage": percentage(r["score"], r["total_questions"]),
            "bestStreak": r.get("best_streak") or 0,
            "completedAt": r.get("completed_at"),
        }
    return latest


def best_percentage(results: list[dict]) -> int | None:
    if not results:
        return None
    return max(percentage(r["score"], r["total_questions"]) for r in results)
