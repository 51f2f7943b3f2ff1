"""Pytest configuration and shared fixtures."""

import os
import time
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from tailbus.application.connection import Connection
from tailbus.infrastructure.config import ChannelOptions
from tailbus.infrastructure.in_memory_metrics import InMemoryMetrics
from tailbus.infrastructure.in_memory_store import InMemoryBoundedStore


@pytest.fixture
def fast_options():
    """Channel options with short intervals for unit tests."""
    return ChannelOptions(retry_interval_ms=10, recreate_delay_ms=20)


@pytest.fixture
def store():
    """Create an empty in-memory bounded store."""
    return InMemoryBoundedStore()


@pytest.fixture
def metrics():
    """Create an in-memory metrics collector."""
    return InMemoryMetrics()


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    mock = MagicMock()
    mock.info = MagicMock()
    mock.warning = MagicMock()
    mock.error = MagicMock()
    mock.debug = MagicMock()
    mock.exception = MagicMock()
    return mock


@pytest_asyncio.fixture
async def connection(store, fast_options, mock_logger, metrics):
    """Create a connection over the in-memory store and shut it down afterwards."""
    conn = Connection(store, options=fast_options, logger=mock_logger, metrics=metrics)

    yield conn

    await conn.shutdown(timeout=1.0)


@pytest.fixture(scope="session")
def nats_container():
    """Start NATS container for integration tests."""
    # Skip if explicitly disabled
    if os.getenv("SKIP_INTEGRATION_TESTS", "").lower() == "true":
        pytest.skip("Integration tests disabled")

    # Use existing NATS if available
    if os.getenv("NATS_URL"):
        yield os.getenv("NATS_URL")
        return

    try:
        from testcontainers.nats import NatsContainer

        container = NatsContainer("nats:2.10-alpine")
        container.with_command("-js")  # Enable JetStream
        container.start()
    except Exception as e:
        pytest.skip(f"NATS container unavailable: {e}")

    # Wait for NATS to be ready
    time.sleep(2)

    nats_url = f"nats://localhost:{container.get_exposed_port(4222)}"
    yield nats_url

    container.stop()
