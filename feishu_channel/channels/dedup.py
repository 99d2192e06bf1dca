"""In-memory message-id deduplication window."""

import time
from collections import OrderedDict
from collections.abc import Callable


class MessageDeduplicator:
    """Remembers recently seen message ids.

    The window is bounded both by size (oldest ids evicted first) and by age.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._seen: OrderedDict[str, float] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._seen

    def is_duplicate(self, message_id: str | None) -> bool:
        """Record *message_id*; True if it was already seen inside the window."""
        if not message_id:
            return False
        now = self._clock()
        self._expire(now)
        if message_id in self._seen:
            return True
        self._seen[message_id] = now
        while len(self._seen) > self.max_entries:
            self._seen.popitem(last=False)
        return False

    def _expire(self, now: float) -> None:
        if self.ttl_seconds <= 0:
            return
        cutoff = now - self.ttl_seconds
        while self._seen:
            oldest_id, seen_at = next(iter(self._seen.items()))
            if seen_at > cutoff:
                break
            del self._seen[oldest_id]

    def clear(self) -> None:
        self._seen.clear()
