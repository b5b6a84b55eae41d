from datetime import date, timedelta
from app.engine.streak import compute_streak, parse_study_date

TODAY = date(2026, 2, 27)
YESTERDAY = TODAY - timedelta(days=1)
TWO_DAYS_AGO = TODAY - timedelta(days=2)
TOMORROW = TODAY + timedelta(days=1)


class TestComputeStreak:
    def test_first_session_ever_starts_streak_at_1(self):
        assert compute_streak(None, 0, TODAY) == 1

    def test_first_session_ignores_stale_counter(self):
        assert compute_streak(None, 7, TODAY) == 1

    def test_consecutive_day_increments_streak(self):
        assert compute_streak(YESTERDAY, 5, TODAY) == 6

    def test_consecutive_day_from_zero(self):
        assert compute_streak(YESTERDAY, 0, TODAY) == 1

    def test_same_day_keeps_streak(self):
        assert compute_streak(TODAY, 5, TODAY) == 5

    def test_same_day_never_below_1(self):
        assert compute_streak(TODAY, 0, TODAY) == 1

    def test_broken_streak_resets_to_1(self):
        assert compute_streak(TWO_DAYS_AGO, 10, TODAY) == 1

    def test_future_last_date_resets_to_1(self):
        assert compute_streak(TOMORROW, 4, TODAY) == 1

    def test_month_boundary(self):
        assert compute_streak(date(2026, 2, 28), 2, date(2026, 3, 1)) == 3

    def test_year_boundary(self):
        assert compute_streak(date(2025, 12, 31), 9, date(2026, 1, 1)) == 10


class TestParseStudyDate:
    def test_empty_is_none(self):
        assert parse_study_date(None) is None
        assert parse_study_date("") is None

    def test_plain_date(self):
        assert parse_study_date("2026-02-26") == YESTERDAY

    def test_timestamp_truncated_to_date(self):
        assert parse_study_date("2026-02-26T23:59:59+00:00") == YESTERDAY
