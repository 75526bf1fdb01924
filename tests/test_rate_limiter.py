"""Tests for lookup throttling."""

import threading
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from urgent_care_intake.errors import PersistenceFailure
from urgent_care_intake.patient_intake.database import RateLimitRepository
from urgent_care_intake.rate_limiter import RateLimiter


@pytest.fixture
def limiter(rate_limit_repo, clock):
    return RateLimiter(rate_limit_repo, max_attempts=5, window_minutes=15, clock=clock)


class TestRateLimiterWindow:
    """Tests for counting attempts inside one window."""

    def test_allows_max_attempts_with_decreasing_remaining(self, limiter):
        results = [limiter.check("10.0.0.5") for _ in range(5)]
        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [4, 3, 2, 1, 0]

    def test_blocks_attempt_after_max(self, limiter, clock):
        for _ in range(5):
            limiter.check("10.0.0.5")
        result = limiter.check("10.0.0.5")
        assert result.allowed is False
        assert result.remaining == 0
        assert result.blocked_until == clock.now + timedelta(minutes=15)

    def test_block_holds_for_window(self, limiter, clock):
        for _ in range(6):
            limiter.check("10.0.0.5")
        clock.advance(minutes=14)
        assert limiter.check("10.0.0.5").allowed is False

    def test_subjects_are_independent(self, limiter):
        for _ in range(6):
            limiter.check("10.0.0.5")
        result = limiter.check("10.0.0.6")
        assert result.allowed is True
        assert result.remaining == 4

    def test_per_call_overrides(self, limiter):
        assert limiter.check("10.0.0.7", max_attempts=1).allowed is True
        assert limiter.check("10.0.0.7", max_attempts=1).allowed is False


class TestRateLimiterReset:
    """Tests for window expiry and block expiry."""

    def test_window_expiry_resets_count(self, limiter, clock):
        for _ in range(3):
            limiter.check("10.0.0.5")
        clock.advance(minutes=16)
        result = limiter.check("10.0.0.5")
        assert result.allowed is True
        assert result.remaining == 4

    def test_block_expiry_starts_fresh_window(self, limiter, rate_limit_repo, clock):
        for _ in range(6):
            limiter.check("10.0.0.5")
        clock.advance(minutes=15, seconds=1)
        result = limiter.check("10.0.0.5")
        assert result.allowed is True
        assert result.remaining == 4

        record = rate_limit_repo.get("10.0.0.5")
        assert record.attempt_count == 1
        assert record.blocked_until is None
        assert record.first_attempt_at == clock.now

    def test_clear_removes_block(self, limiter, rate_limit_repo):
        for _ in range(6):
            limiter.check("10.0.0.5")
        rate_limit_repo.clear("10.0.0.5")
        assert rate_limit_repo.get("10.0.0.5") is None
        assert limiter.check("10.0.0.5").allowed is True


class TestRateLimiterFailure:
    """Tests for store failures."""

    def test_fails_closed_when_store_unavailable(self, clock):
        store = MagicMock()
        store.record_attempt.side_effect = PersistenceFailure("database is locked")
        limiter = RateLimiter(store, clock=clock)

        result = limiter.check("10.0.0.5")

        assert result.allowed is False
        assert result.remaining == 0
        assert result.blocked_until is None

    def test_passes_window_settings_to_store(self, clock):
        store = MagicMock()
        store.record_attempt.return_value = MagicMock(attempt_count=1, blocked_until=None)
        limiter = RateLimiter(store, max_attempts=3, window_minutes=10, clock=clock)

        result = limiter.check("10.0.0.5")

        store.record_attempt.assert_called_once_with("10.0.0.5", 3, 10, clock.now)
        assert result.remaining == 2

    def test_explicit_zero_is_not_replaced_by_default(self, clock):
        store = MagicMock()
        store.record_attempt.return_value = MagicMock(attempt_count=1, blocked_until=None)
        limiter = RateLimiter(store, max_attempts=5, window_minutes=15, clock=clock)

        limiter.check("10.0.0.5", max_attempts=0, window_minutes=0)

        store.record_attempt.assert_called_once_with("10.0.0.5", 0, 0, clock.now)


class TestRateLimiterConcurrency:
    """Tests for simultaneous checks from separate connections."""

    def test_last_slot_taken_once(self, db_path, clock):
        for _ in range(4):
            RateLimiter(RateLimitRepository(db_path), clock=clock).check("10.0.0.5")

        workers = 8
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def attempt():
            limiter = RateLimiter(RateLimitRepository(db_path), clock=clock)
            barrier.wait()
            result = limiter.check("10.0.0.5")
            with lock:
                results.append(result)

        threads = [threading.Thread(target=attempt) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == workers
        assert sum(1 for r in results if r.allowed) == 1
        record = RateLimitRepository(db_path).get("10.0.0.5")
        assert record.attempt_count == 5
        assert record.blocked_until is not None
