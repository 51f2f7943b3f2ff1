"""Unit tests for Connection."""

from unittest.mock import AsyncMock, patch

import pytest

from tailbus.application.channel import Channel
from tailbus.application.connection import Connection
from tailbus.domain.enums import ChannelState, ConnectionState
from tailbus.domain.exceptions import TailbusError
from tailbus.domain.models import DEFAULT_CHANNEL_NAME
from tailbus.infrastructure.config import ChannelOptions
from tests.builders import wait_until


class TestConnection:
    """Test cases for Connection."""

    @pytest.mark.asyncio
    async def test_channel_returns_same_instance(self, connection):
        """Test that a live channel is reused for the same name."""
        first = connection.channel("orders")
        second = connection.channel("orders")

        assert first is second
        assert isinstance(first, Channel)

    @pytest.mark.asyncio
    async def test_different_names_get_different_channels(self, connection):
        """Test that each name has its own channel."""
        assert connection.channel("a") is not connection.channel("b")

    @pytest.mark.asyncio
    async def test_closed_channel_is_replaced(self, connection):
        """Test that a closed channel is not returned again."""
        first = connection.channel("orders")
        first.close()

        second = connection.channel("orders")

        assert second is not first
        assert not second.closed
        await first.shutdown()

    @pytest.mark.asyncio
    async def test_default_channel_name(self, connection):
        """Test that channel() without a name uses the default name."""
        channel = connection.channel()

        assert channel.name == DEFAULT_CHANNEL_NAME

    @pytest.mark.asyncio
    async def test_options_as_first_argument(self, connection):
        """Test that options may be passed without a name."""
        options = ChannelOptions(capacity_bytes=2048, retry_interval_ms=10)

        channel = connection.channel(options)

        assert channel.name == DEFAULT_CHANNEL_NAME
        assert channel.options is options

    @pytest.mark.asyncio
    async def test_dict_options(self, connection, store):
        """Test that plain dict options are validated into ChannelOptions."""
        channel = connection.channel("sized", {"capacity_bytes": 4096, "retry_interval_ms": 10})
        await channel.ready()

        assert channel.options.capacity_bytes == 4096
        assert store.get_collection("sized").capacity_bytes == 4096

    @pytest.mark.asyncio
    async def test_connection_default_options(self, connection, fast_options):
        """Test that channels without options inherit the connection defaults."""
        assert connection.channel("inherit").options is fast_options

    @pytest.mark.asyncio
    async def test_options_ignored_for_existing_channel(self, connection):
        """Test that options only apply when a channel is created."""
        first = connection.channel("orders")
        second = connection.channel("orders", ChannelOptions(capacity_bytes=1024))

        assert second is first
        assert second.options.capacity_bytes != 1024

    @pytest.mark.asyncio
    async def test_state_and_destroyed(self, connection):
        """Test connection state transitions."""
        assert connection.state == ConnectionState.CONNECTED
        assert not connection.destroyed

        connection.close()

        assert connection.state == ConnectionState.DESTROYED
        assert connection.destroyed

    @pytest.mark.asyncio
    async def test_channel_after_close_raises(self, connection):
        """Test that no channel can be opened on a closed connection."""
        connection.close()

        with pytest.raises(TailbusError, match="closed connection"):
            connection.channel("late")

    @pytest.mark.asyncio
    async def test_channels_lists_live_channels(self, connection):
        """Test that the channels property excludes closed channels."""
        kept = connection.channel("kept")
        dropped = connection.channel("dropped")
        dropped.close()

        assert connection.channels == {"kept": kept}
        await dropped.shutdown()

    @pytest.mark.asyncio
    async def test_open_channels_gauge(self, connection, metrics):
        """Test that the open channel gauge follows the registry."""
        connection.channel("a")
        connection.channel("b")
        assert metrics.get_all()["gauges"]["channels.open"] == 2

        connection.close()
        assert metrics.get_all()["gauges"]["channels.open"] == 0

    @pytest.mark.asyncio
    async def test_shutdown_stops_all_channels(self, connection):
        """Test that shutdown waits for every channel loop to end."""
        channels = [connection.channel(name) for name in ("a", "b", "c")]
        for channel in channels:
            await channel.ready()

        await connection.shutdown(timeout=1.0)

        assert all(ch.state == ChannelState.STOPPED for ch in channels)

    @pytest.mark.asyncio
    async def test_shutdown_awaits_replaced_channels(self, connection):
        """Test that shutdown also waits for closed channels that were replaced."""
        first = connection.channel("orders")
        first.close()
        second = connection.channel("orders")

        with patch.object(first, "shutdown", AsyncMock()) as first_shutdown:
            await connection.shutdown(timeout=1.0)

        first_shutdown.assert_awaited_once_with(1.0)
        assert second.done
        await first.shutdown()
        assert first.done

    @pytest.mark.asyncio
    async def test_same_name_shares_one_channel(self, connection):
        """Test that publishing through a second lookup reaches the first."""
        channel = connection.channel("shared")
        received = []
        channel.subscribe(received.append)

        await connection.channel("shared").publish("x", 1)
        await wait_until(lambda: received == [1])

    @pytest.mark.asyncio
    async def test_default_logger_and_metrics(self, store):
        """Test that a connection creates its own logger and metrics."""
        conn = Connection(store)

        assert conn.metrics is not None
        assert conn.store is store
        await conn.shutdown()
