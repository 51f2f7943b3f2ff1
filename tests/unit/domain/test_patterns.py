"""Unit tests for stream naming patterns."""

import pytest

from tailbus.domain.patterns import StreamPatterns


class TestStreamPatterns:
    """Test cases for StreamPatterns."""

    def test_stream_name(self):
        """Test stream name generation."""
        assert StreamPatterns.stream("TAILBUS", "orders") == "TAILBUS_orders"

    def test_subject(self):
        """Test subject generation."""
        assert StreamPatterns.subject("tailbus", "orders") == "tailbus.orders"

    @pytest.mark.parametrize("name", ["orders", "order-events", "orders_v2", "A1"])
    def test_valid_collection_names(self, name):
        """Test accepted collection names."""
        assert StreamPatterns.is_valid_collection_name(name)

    @pytest.mark.parametrize("name", ["", "orders.v2", "a b", "orders*", "a>b", "a/b"])
    def test_invalid_collection_names(self, name):
        """Test rejected collection names."""
        assert not StreamPatterns.is_valid_collection_name(name)
