#!/usr/bin/env python3
"""Tests for retry schemes.

Tests cover:
    - The stepped backoff sequence and its plateau
    - initial_backoff offset
    - Retry budgets and reset
"""
import sys

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])
from src.dtcloud.api.resilience import (
    BACKOFF_INTERVALS,
    ExponentialBackoffScheme,
    RetryScheme,
)


# ============================================
# Backoff Sequence Tests
# ============================================

class TestExponentialBackoffSequence:
    """Test the delays handed out by ExponentialBackoffScheme."""

    def test_sequence_matches_intervals(self):
        """First delays follow the fixed interval table."""
        scheme = ExponentialBackoffScheme()
        delays = [scheme.next_backoff() for _ in range(len(BACKOFF_INTERVALS))]
        assert delays == [0, 0.3, 1, 3, 5, 7, 11, 15]

    def test_plateaus_at_last_interval(self):
        """After the table runs out every delay is the last value."""
        scheme = ExponentialBackoffScheme()
        delays = [scheme.next_backoff() for _ in range(12)]
        assert delays[8:] == [15, 15, 15, 15]

    def test_initial_backoff_is_added(self):
        """initial_backoff shifts every step."""
        scheme = ExponentialBackoffScheme(initial_backoff=2)
        assert scheme.next_backoff() == 2
        assert scheme.next_backoff() == pytest.approx(2.3)
        assert scheme.next_backoff() == 3

    def test_is_a_retry_scheme(self):
        assert isinstance(ExponentialBackoffScheme(), RetryScheme)


# ============================================
# Budget Tests
# ============================================

class TestRetryBudget:
    """Test max_retries and reset behavior."""

    def test_unbounded_by_default(self):
        """Without max_retries the scheme never gives up."""
        scheme = ExponentialBackoffScheme()
        for _ in range(100):
            assert scheme.next_backoff() is not None

    def test_budget_exhausted_returns_none(self):
        """Once max_retries delays are used up, None is returned."""
        scheme = ExponentialBackoffScheme(max_retries=2)
        assert scheme.next_backoff() == 0
        assert scheme.next_backoff() == 0.3
        assert scheme.next_backoff() is None
        assert scheme.next_backoff() is None

    def test_zero_budget(self):
        scheme = ExponentialBackoffScheme(max_retries=0)
        assert scheme.next_backoff() is None

    def test_reset_restarts_sequence(self):
        """reset() starts over from the first interval."""
        scheme = ExponentialBackoffScheme(max_retries=3)
        for _ in range(3):
            scheme.next_backoff()
        assert scheme.next_backoff() is None

        scheme.reset()
        assert scheme.retries == 0
        assert scheme.next_backoff() == 0

    @pytest.mark.parametrize("kwargs", [{"initial_backoff": -1}, {"max_retries": -1}])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            ExponentialBackoffScheme(**kwargs)
