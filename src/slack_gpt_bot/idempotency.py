"""
In-process duplicate-delivery guard.

Slack redelivers an event when the first attempt is slow to acknowledge. Each
warm Lambda instance remembers the delivery ids it accepted, evicting entries
older than ``ttl_seconds`` and, beyond ``max_entries``, the oldest ones.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable


class RecentDeliveries:
    def __init__(
        self,
        ttl_seconds: float = 600.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max(1, max_entries)
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, delivery_id: str) -> bool:
        self._evict_expired(self._clock())
        return delivery_id in self._seen

    def record_if_new(self, delivery_id: str) -> bool:
        """Return True if recorded now (i.e., first time), False if already seen."""
        now = self._clock()
        self._evict_expired(now)
        if delivery_id in self._seen:
            return False
        self._seen[delivery_id] = now
        while len(self._seen) > self.max_entries:
            self._seen.popitem(last=False)
        return True

    def _evict_expired(self, now: float) -> None:
        cutoff = now - self.ttl_seconds
        while self._seen:
            oldest_id, seen_at = next(iter(self._seen.items()))
            if seen_at >= cutoff:
                break
            del self._seen[oldest_id]


_default: RecentDeliveries | None = None


def default_deliveries(ttl_seconds: float, max_entries: int) -> RecentDeliveries:
    global _default
    if _default is None:
        _default = RecentDeliveries(ttl_seconds, max_entries)
    return _default
