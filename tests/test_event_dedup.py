"""Unit tests for event deduplication.

Slack retries event delivery, so the same mention can arrive more than once.
"""

import pytest

from mascotgen.services.dispatch.event_dedup import EventDeduplicator, idempotency_key


def test_idempotency_key_combines_channel_user_and_timestamp():
    """Test that the key is built from conversation, requester and event time."""
    assert idempotency_key("C123", "U456", "1700000000.000100") == "C123:U456:1700000000.000100"


class TestEventDeduplicator:
    """Test suite for EventDeduplicator."""

    def test_first_delivery_is_not_duplicate(self):
        """Test that an unseen key is recorded and processed."""
        dedup = EventDeduplicator()

        assert dedup.is_duplicate("C1:U1:1.0") is False
        assert "C1:U1:1.0" in dedup
        assert len(dedup) == 1

    def test_redelivery_is_duplicate(self):
        """Test that a repeated key is reported as a duplicate."""
        # Arrange
        dedup = EventDeduplicator()
        dedup.is_duplicate("C1:U1:1.0")

        # Act
        result = dedup.is_duplicate("C1:U1:1.0")

        # Assert
        assert result is True
        assert len(dedup) == 1

    def test_capacity_evicts_oldest_key(self):
        """Test that the 101st key evicts the first one recorded."""
        # Arrange
        dedup = EventDeduplicator(capacity=100)
        for i in range(100):
            dedup.is_duplicate(f"key-{i}")

        # Act
        dedup.is_duplicate("key-100")

        # Assert
        assert len(dedup) == 100
        assert "key-0" not in dedup
        assert "key-1" in dedup
        assert "key-100" in dedup

    def test_evicted_key_is_processed_again(self):
        """Test that a key older than the window is no longer suppressed."""
        # Arrange
        dedup = EventDeduplicator(capacity=2)
        dedup.is_duplicate("a")
        dedup.is_duplicate("b")
        dedup.is_duplicate("c")

        # Act / Assert
        assert dedup.is_duplicate("a") is False

    def test_duplicate_hit_does_not_refresh_position(self):
        """Test that eviction follows insertion order, not access order."""
        # Arrange
        dedup = EventDeduplicator(capacity=2)
        dedup.is_duplicate("a")
        dedup.is_duplicate("b")
        assert dedup.is_duplicate("a") is True

        # Act
        dedup.is_duplicate("c")

        # Assert
        assert "a" not in dedup
        assert "b" in dedup

    def test_invalid_capacity_rejected(self):
        with pytest.raises(ValueError):
            EventDeduplicator(capacity=0)
