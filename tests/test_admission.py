"""Unit tests for RateLimiter and CapacityGuard."""

from __future__ import annotations

import time

import pytest

from store_orchestrator.services.capacity import CapacityGuard
from store_orchestrator.services.rate_limiter import RateLimiter


class TestRateLimiter:
    def test_nth_plus_one_request_is_denied(self) -> None:
        limiter = RateLimiter(max_requests=10, window_seconds=60)

        results = [limiter.admit("1.2.3.4") for _ in range(11)]

        assert results == [True] * 10 + [False]

    def test_clients_have_separate_windows(self) -> None:
        limiter = RateLimiter(max_requests=1, window_seconds=60)

        assert limiter.admit("1.1.1.1") is True
        assert limiter.admit("1.1.1.1") is False
        assert limiter.admit("2.2.2.2") is True

    def test_entry_tracks_count_and_reset(self) -> None:
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        before = time.time()

        limiter.admit("client")
        limiter.admit("client")
        entry = limiter.entry("client")

        assert entry.count == 2
        assert before < entry.reset_time <= time.time() + 60 + 1

    def test_unseen_client_has_empty_entry(self) -> None:
        limiter = RateLimiter(max_requests=5, window_seconds=60)
        assert limiter.entry("nobody").count == 0

    def test_window_expiry_resets_count(self) -> None:
        limiter = RateLimiter(max_requests=2, window_seconds=1)
        assert limiter.admit("client") is True
        assert limiter.admit("client") is True
        assert limiter.admit("client") is False

        time.sleep(1.2)

        assert limiter.admit("client") is True
        assert limiter.entry("client").count == 1

    def test_reset_clears_all_windows(self) -> None:
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        limiter.admit("client")
        limiter.reset()
        assert limiter.admit("client") is True

    @pytest.mark.parametrize("max_requests, window", [(0, 60), (10, 0), (-1, 60)])
    def test_rejects_invalid_configuration(self, max_requests: int, window: int) -> None:
        with pytest.raises(ValueError):
            RateLimiter(max_requests, window)


class TestCapacityGuard:
    def test_at_max_is_denied(self) -> None:
        assert CapacityGuard(max_stores=50).check(50) is False

    def test_one_below_max_is_admitted(self) -> None:
        assert CapacityGuard(max_stores=50).check(49) is True

    def test_above_max_is_denied(self) -> None:
        assert CapacityGuard(max_stores=3).check(7) is False
