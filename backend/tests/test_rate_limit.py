from app.engine.rate_limit import FixedWindowRateLimiter, client_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_limiter(**kwargs):
    clock = FakeClock()
    return FixedWindowRateLimiter(clock=clock, **kwargs), clock


class TestFixedWindow:
    def test_first_three_allowed_fourth_denied(self):
        limiter, _ = make_limiter()
        assert [limiter.check("1.2.3.4").allowed for _ in range(4)] == [True, True, True, False]

    def test_denial_reports_remaining_window(self):
        limiter, clock = make_limiter()
        for _ in range(3):
            limiter.check("a")
        clock.advance(600)
        decision = limiter.check("a")
        assert decision.allowed is False
        assert decision.reset_in_seconds == 3000

    def test_denial_reports_at_least_one_second(self):
        limiter, clock = make_limiter()
        for _ in range(3):
            limiter.check("a")
        clock.advance(3599.9)
        assert limiter.check("a").reset_in_seconds == 1

    def test_window_resets_after_an_hour(self):
        limiter, clock = make_limiter()
        for _ in range(4):
            limiter.check("a")
        clock.advance(3600)
        assert limiter.check("a").allowed is True

    def test_denied_requests_do_not_extend_window(self):
        limiter, clock = make_limiter()
        for _ in range(3):
            limiter.check("a")
        clock.advance(1800)
        limiter.check("a")
        clock.advance(1800)
        assert limiter.check("a").allowed is True

    def test_keys_are_independent(self):
        limiter, _ = make_limiter()
        for _ in range(3):
            limiter.check("a")
        assert limiter.check("a").allowed is False
        assert limiter.check("b").allowed is True

    def test_sweep_drops_expired_windows(self):
        limiter, clock = make_limiter(sweep_threshold=5)
        for i in range(6):
            limiter.check(f"k{i}")
        assert len(limiter) == 6
        clock.advance(3601)
        limiter.check("fresh")
        assert len(limiter) == 1

    def test_reset(self):
        limiter, _ = make_limiter()
        for _ in range(3):
            limiter.check("a")
        limiter.reset()
        assert len(limiter) == 0
        assert limiter.check("a").allowed is True


class TestClientKey:
    def test_first_forwarded_hop(self):
        assert client_key({"x-forwarded-for": "9.9.9.9, 10.0.0.1"}) == "9.9.9.9"

    def test_real_ip_fallback(self):
        assert client_key({"x-real-ip": " 8.8.8.8 "}) == "8.8.8.8"

    def test_forwarded_wins_over_real_ip(self):
        assert client_key({"x-forwarded-for": "1.1.1.1", "x-real-ip": "2.2.2.2"}) == "1.1.1.1"

    def test_fingerprint_fallback_is_stable(self):
        headers = {"user-agent": "Mozilla/5.0", "accept": "text/html"}
        key = client_key(headers)
        assert key.startswith("unknown-")
        assert client_key(dict(headers)) == key

    def test_fingerprint_differs_by_agent(self):
        assert client_key({"user-agent": "a"}) != client_key({"user-agent": "b"})

    def test_no_headers(self):
        assert client_key({}) == "unknown-0"
