"""Recency set for suppressing re-delivered trigger events.

Slack delivers events at least once and retries when an acknowledgement is
slow. Keys are kept in insertion order and the oldest key is evicted when the
set is full, so very old duplicates can slip through again.
"""

from collections import OrderedDict

import structlog

logger = structlog.get_logger(__name__)


def idempotency_key(destination_id: str, requester_id: str, event_ts: str) -> str:
    """Build the dedup key for a trigger event."""
    return f"{destination_id}:{requester_id}:{event_ts}"


class EventDeduplicator:
    """Bounded, insertion-ordered set of seen idempotency keys."""

    def __init__(self, capacity: int = 100):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._seen: OrderedDict[str, None] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, key: object) -> bool:
        return key in self._seen

    def is_duplicate(self, key: str) -> bool:
        """Check ``key`` and record it if new.

        A key seen again is not moved to the newest position.

        Returns:
            True if the key was already recorded (caller must skip processing)
        """
        if key in self._seen:
            logger.info("event.duplicate", key=key)
            return True

        if len(self._seen) >= self._capacity:
            evicted, _ = self._seen.popitem(last=False)
            logger.debug("event.evicted", key=evicted)

        self._seen[key] = None
        return False
