"""Tests for structured logging context."""

import pytest
import structlog
from structlog.testing import CapturingLogger

from src.impersonate.core.logging import (
    bind_impersonation_context,
    bind_request_context,
    clear_request_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def capturing_logger():
    """Create a capturing logger for tests."""
    cap_logger = CapturingLogger()

    # Save original configuration to restore later
    old_config = structlog.get_config()

    # Use *args, **kwargs to accept any arguments passed by structlog
    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)


def test_bind_request_context(capturing_logger):
    """Test binding request_id to log context."""
    request_id = "test-request-123"

    bind_request_context(request_id)
    logger = structlog.get_logger()
    logger.info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == request_id


def test_bind_request_context_with_none(capturing_logger):
    """Test that None request_id is not bound."""
    bind_request_context(None)
    logger = structlog.get_logger()
    logger.info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert "request_id" not in entries[0].kwargs


def test_bind_impersonation_context(capturing_logger):
    """Log lines during impersonation carry the real operator."""
    bind_impersonation_context(1, "web", "api")
    logger = structlog.get_logger()
    logger.info("test message")

    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["impersonator_id"] == "1"
    assert entries[0].kwargs["impersonator_guard"] == "web"
    assert entries[0].kwargs["impersonator_guard_using"] == "api"


def test_clear_request_context(capturing_logger):
    """Test clearing request context."""
    bind_request_context("test-request-123")
    bind_impersonation_context(1, "web", "web")

    clear_request_context()

    logger = structlog.get_logger()
    logger.info("test message")
    entries = capturing_logger.calls
    assert len(entries) == 1
    assert "request_id" not in entries[0].kwargs
    assert "impersonator_id" not in entries[0].kwargs


def test_context_accumulation(capturing_logger):
    """Test that context accumulates across multiple bind calls."""
    bind_request_context("test-request-123")
    bind_impersonation_context(1, "web", "web")

    logger = structlog.get_logger()
    logger.info("test message")
    entries = capturing_logger.calls
    assert len(entries) == 1
    assert entries[0].kwargs["request_id"] == "test-request-123"
    assert entries[0].kwargs["impersonator_id"] == "1"
