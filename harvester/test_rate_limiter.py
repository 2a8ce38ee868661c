import random

import pytest
from rate_limiter import RateLimiter, AdmissionDecision, HOUR_SECONDS
from conftest import FakeClock


def test_allows_until_cap_then_waits_for_oldest_to_expire():
    clock = FakeClock(1000.0)
    limiter = RateLimiter.hourly(2, clock=clock)

    assert limiter.admit("example.com").allowed
    clock.advance(10)
    assert limiter.admit("example.com").allowed
    clock.advance(5)

    decision = limiter.admit("example.com")
    assert not decision.allowed
    # (first_timestamp + 1 hour) - now
    assert decision.wait_seconds == pytest.approx(1000.0 + HOUR_SECONDS - 1015.0)


def test_wait_does_not_record_a_request():
    clock = FakeClock()
    limiter = RateLimiter.hourly(1, clock=clock)
    limiter.admit("a.com")
    limiter.admit("a.com")
    limiter.admit("a.com")
    assert limiter.count("a.com", HOUR_SECONDS) == 1


def test_domains_are_independent():
    clock = FakeClock()
    limiter = RateLimiter.hourly(1, clock=clock)
    assert limiter.admit("a.com").allowed
    assert limiter.admit("b.com").allowed
    assert not limiter.admit("a.com").allowed


def test_admits_again_after_waiting():
    clock = FakeClock()
    limiter = RateLimiter.hourly(2, clock=clock)
    limiter.admit("a.com")
    limiter.admit("a.com")
    decision = limiter.admit("a.com")
    clock.advance(decision.wait_seconds)
    assert limiter.admit("a.com").allowed


def test_clock_going_backwards_does_not_reopen_slots():
    clock = FakeClock(5000.0)
    limiter = RateLimiter.hourly(1, clock=clock)
    assert limiter.admit("a.com").allowed
    clock.now = 100.0
    assert not limiter.admit("a.com").allowed


def test_multiple_horizons_take_the_longest_wait():
    clock = FakeClock()
    limiter = RateLimiter({10: 1, 3600: 5}, clock=clock)
    assert limiter.admit("a.com").allowed
    decision = limiter.admit("a.com")
    assert decision == AdmissionDecision.wait(10.0)


def test_old_timestamps_are_pruned():
    clock = FakeClock()
    limiter = RateLimiter.hourly(3, clock=clock)
    limiter.admit("a.com")
    clock.advance(HOUR_SECONDS + 1)
    limiter.admit("a.com")
    assert len(limiter._timestamps["a.com"]) == 1


def test_window_counts_report_every_tracked_window():
    clock = FakeClock()
    limiter = RateLimiter.hourly(10, clock=clock)
    limiter.admit("a.com")
    clock.advance(30)
    limiter.admit("a.com")
    counts = limiter.window_counts("a.com")
    assert counts["1s"] == 1
    assert counts["60s"] == 2
    assert counts["3600s"] == 2


@pytest.mark.parametrize("seed", [1, 2, 3])
def test_never_more_than_cap_allowed_in_any_rolling_hour(seed):
    rng = random.Random(seed)
    clock = FakeClock(0.0)
    cap = 4
    limiter = RateLimiter.hourly(cap, clock=clock)
    allowed = []
    for _ in range(300):
        clock.advance(rng.uniform(0, 900))
        if limiter.admit("a.com").allowed:
            allowed.append(clock.now)
    for i, start in enumerate(allowed):
        in_window = [t for t in allowed[i:] if t < start + HOUR_SECONDS]
        assert len(in_window) <= cap


def test_rejects_invalid_caps():
    with pytest.raises(ValueError):
        RateLimiter({})
    with pytest.raises(ValueError):
        RateLimiter({3600: 0})
