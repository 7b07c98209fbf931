#!/usr/bin/env python3
"""Retry Schemes for the DT Cloud client.

A retry scheme answers one question: "how long should I wait before the
next attempt, or should I give up?"  The executor and the event stream
ask it after each failure and call ``reset()`` after each success.

Example:
    scheme = ExponentialBackoffScheme(initial_backoff=0, max_retries=3)
    while (delay := scheme.next_backoff()) is not None:
        await asyncio.sleep(delay)
        if await try_again():
            scheme.reset()
            break

Author: DT Cloud Client Team
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

# Seconds added to the initial backoff, indexed by retries so far.
BACKOFF_INTERVALS: tuple[float, ...] = (0, 0.3, 1, 3, 5, 7, 11, 15)


class RetryScheme(ABC):
    """Decides the delay before each retry attempt."""

    @abstractmethod
    def next_backoff(self) -> Optional[float]:
        """Return seconds to wait before the next attempt, or None to stop."""

    @abstractmethod
    def reset(self) -> None:
        """Forget previous attempts (called after a success)."""


class ExponentialBackoffScheme(RetryScheme):
    """Fixed stepped backoff: 0, 0.3, 1, 3, 5, 7, 11, 15, 15, ... seconds.

    Attributes:
        initial_backoff: Seconds added to every step
        max_retries: Retry budget; None means retry forever
        retries: Attempts handed out since the last reset
    """

    def __init__(self, initial_backoff: float = 0.0, max_retries: Optional[int] = None):
        if initial_backoff < 0:
            raise ValueError("initial_backoff must be >= 0")
        if max_retries is not None and max_retries < 0:
            raise ValueError("max_retries must be >= 0 or None")
        self.initial_backoff = initial_backoff
        self.max_retries = max_retries
        self.retries = 0

    def next_backoff(self) -> Optional[float]:
        if self.max_retries is not None and self.retries >= self.max_retries:
            logger.debug(f"Retry budget exhausted ({self.retries}/{self.max_retries})")
            return None

        index = min(self.retries, len(BACKOFF_INTERVALS) - 1)
        self.retries += 1
        return self.initial_backoff + BACKOFF_INTERVALS[index]

    def reset(self) -> None:
        self.retries = 0

    def __repr__(self) -> str:
        return (
            f"ExponentialBackoffScheme(initial_backoff={self.initial_backoff}, "
            f"max_retries={self.max_retries}, retries={self.retries})"
        )
