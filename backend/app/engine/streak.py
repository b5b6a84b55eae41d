"""
Study streak tracking — pure functions, no DB access.
"""
from datetime import date, timedelta


def compute_streak(
    last_study_date: date | None,
    current_streak: int,
    today: date,
) -> int:
    """
    Returns the new streak value for a session closed on `today`.

    Same-day closes keep the streak (never below 1), a close the day after
    the last one extends it, anything else (gap or a future date) restarts at 1.
    """
    if last_study_date is None:
        return 1

    if last_study_date == today:
        return current_streak or 1

    yesterday = today - timedelta(days=1)
    if last_study_date == yesterday:
        return (current_streak or 0) + 1

    return 1


def parse_study_date(value: str | None) -> date | None:
    """Accepts a stored date or timestamp string and truncates it to a date."""
    if not value:
        return None
    return date.fromisoformat(value[:10])
