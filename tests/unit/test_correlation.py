"""
Unit tests for correlation module.
"""

import logging
import uuid

import pytest

from catalog_sync.utils.correlation import (
    CorrelationContext,
    clear_correlation_id,
    correlation_id_filter,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


def make_record():
    return logging.LogRecord(
        name="catalog_sync.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=None
    )


class TestCorrelationIdGeneration:
    """Test correlation ID generation."""

    def test_generate_correlation_id_returns_valid_uuid(self):
        """Test that generated correlation ID is a valid UUID."""
        correlation_id = generate_correlation_id()

        assert isinstance(correlation_id, str)
        assert str(uuid.UUID(correlation_id)) == correlation_id

    def test_generate_correlation_id_returns_unique_values(self):
        """Test that generated IDs are unique."""
        assert generate_correlation_id() != generate_correlation_id()


class TestCorrelationIdContext:
    """Test correlation ID context management."""

    def setup_method(self):
        """Clear correlation ID before each test."""
        clear_correlation_id()

    def teardown_method(self):
        """Clear correlation ID after each test."""
        clear_correlation_id()

    def test_get_correlation_id_returns_none_when_not_set(self):
        """Test that get returns None when ID is not set."""
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        """Test setting and retrieving correlation ID."""
        set_correlation_id("run-123")

        assert get_correlation_id() == "run-123"

    @pytest.mark.parametrize("value", ["", None, 12345])
    def test_set_invalid_correlation_id_raises_error(self, value):
        """Test that empty or non-string values are rejected."""
        with pytest.raises(ValueError, match="non-empty string"):
            set_correlation_id(value)

    def test_clear_correlation_id(self):
        """Test clearing correlation ID."""
        set_correlation_id("run-123")
        clear_correlation_id()

        assert get_correlation_id() is None


class TestCorrelationContext:
    """Test CorrelationContext context manager."""

    def setup_method(self):
        """Clear correlation ID before each test."""
        clear_correlation_id()

    def teardown_method(self):
        """Clear correlation ID after each test."""
        clear_correlation_id()

    def test_context_creates_new_id(self):
        """Test that context manager creates new ID."""
        with CorrelationContext() as correlation_id:
            assert correlation_id is not None
            assert get_correlation_id() == correlation_id

        assert get_correlation_id() is None

    def test_context_uses_provided_id(self):
        """Test that context manager uses provided ID."""
        with CorrelationContext("custom-id") as correlation_id:
            assert correlation_id == "custom-id"

    def test_context_restores_previous_id(self):
        """Test that context manager restores previous ID."""
        set_correlation_id("original-id")

        with CorrelationContext() as nested_id:
            assert get_correlation_id() == nested_id

        assert get_correlation_id() == "original-id"

    def test_context_clears_on_exception(self):
        """Test that context is cleaned up even on exception."""
        with pytest.raises(RuntimeError):
            with CorrelationContext():
                raise RuntimeError("Test exception")

        assert get_correlation_id() is None


class TestCorrelationFilter:
    """Test the logging filter."""

    def setup_method(self):
        clear_correlation_id()

    def teardown_method(self):
        clear_correlation_id()

    def test_filter_when_no_id(self):
        """Test that records get "N/A" outside a run."""
        record = make_record()

        assert correlation_id_filter(record) is True
        assert record.correlation_id == "N/A"

    def test_filter_inside_context(self):
        """Test that records carry the run's correlation ID."""
        record = make_record()

        with CorrelationContext("run-42"):
            correlation_id_filter(record)

        assert record.correlation_id == "run-42"
