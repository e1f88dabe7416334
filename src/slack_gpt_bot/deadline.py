"""
Invocation deadline and per-call timeout budgeting.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any


class Deadline:
    """Wall-clock ceiling for one invocation.

    Every outbound call takes ``budget(cap)`` as its timeout so no single
    stage can consume the time the later stages need.
    """

    def __init__(
        self, seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._clock = clock
        self._expires_at = clock() + max(0.0, seconds)

    @classmethod
    def from_context(
        cls,
        context: Any,
        fallback_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> Deadline:
        get_remaining = getattr(context, "get_remaining_time_in_millis", None)
        if callable(get_remaining):
            return cls(get_remaining() / 1000.0, clock)
        return cls(fallback_seconds, clock)

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def budget(self, cap: float, reserve: float = 0.0) -> float:
        """Timeout for the next call: at most ``cap``, leaving ``reserve`` unused."""
        return max(0.0, min(cap, self.remaining() - reserve))
