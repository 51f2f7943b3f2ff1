"""Connection - registry of named channels over one bounded store."""

from __future__ import annotations

import asyncio
from typing import Any

from ..domain.enums import ConnectionState
from ..domain.exceptions import TailbusError
from ..domain.models import DEFAULT_CHANNEL_NAME
from ..infrastructure.config import ChannelOptions
from ..ports.bounded_store import BoundedStorePort
from ..ports.logger import LoggerPort
from ..ports.metrics import MetricsPort
from .channel import Channel


class Connection:
    """Holds the named channels of one store.

    ``channel(name)`` returns the live channel for a name or creates a new
    one. ``close()`` marks the connection destroyed; its channels stop
    dispatching on their next loop iteration.

    Get-or-create is a plain synchronous method, so it cannot interleave with
    another call on the same event loop.
    """

    def __init__(
        self,
        store: BoundedStorePort,
        options: ChannelOptions | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ):
        """Initialize the connection.

        Args:
            store: Bounded store shared by every channel of this connection
            options: Default options for channels created without their own
            logger: Optional logger port. If not provided, uses simple logger.
            metrics: Optional metrics port. If not provided, uses in-memory metrics.
        """
        self._store = store
        self._default_options = options or ChannelOptions()
        self._logger = logger or self._create_default_logger()
        self._metrics = metrics or self._create_default_metrics()
        self._channels: dict[str, Channel] = {}
        # Closed channels replaced by a new one, until their tail loop ends
        self._retired: list[Channel] = []
        self._destroyed = False

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from ..infrastructure.simple_logger import SimpleLogger

        return SimpleLogger("tailbus")

    def _create_default_metrics(self) -> MetricsPort:
        """Create default metrics if none provided."""
        from ..infrastructure.in_memory_metrics import InMemoryMetrics

        return InMemoryMetrics()

    @property
    def store(self) -> BoundedStorePort:
        """The bounded store behind this connection."""
        return self._store

    @property
    def metrics(self) -> MetricsPort:
        """Metrics shared by this connection and its channels."""
        return self._metrics

    @property
    def destroyed(self) -> bool:
        """Whether ``close()`` was called."""
        return self._destroyed

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        if self._destroyed:
            return ConnectionState.DESTROYED
        return ConnectionState.CONNECTED

    @property
    def channels(self) -> dict[str, Channel]:
        """Live (not closed) channels by name."""
        return {name: ch for name, ch in self._channels.items() if not ch.closed}

    def channel(
        self,
        name: str | ChannelOptions | dict[str, Any] = DEFAULT_CHANNEL_NAME,
        options: ChannelOptions | dict[str, Any] | None = None,
    ) -> Channel:
        """Return the live channel named ``name``, creating it if needed.

        Options only apply when a new channel is created. Passing options as
        the first argument uses the default channel name.

        Raises:
            TailbusError: If the connection was closed
            RuntimeError: If there is no running event loop
        """
        if not isinstance(name, str):
            name, options = DEFAULT_CHANNEL_NAME, name
        if isinstance(options, dict):
            options = ChannelOptions(**options)

        if self._destroyed:
            raise TailbusError(
                f"Cannot open channel '{name}' on a closed connection",
                details={"channel": name},
            )

        channel = self._channels.get(name)
        if channel is None or channel.closed:
            if channel is not None:
                self._retired = [ch for ch in self._retired if not ch.done]
                self._retired.append(channel)
            channel = Channel(
                self._store,
                name,
                options or self._default_options,
                is_destroyed=lambda: self._destroyed,
                logger=self._logger,
                metrics=self._metrics,
            )
            self._channels[name] = channel
            self._metrics.gauge("channels.open", len(self.channels))
            self._logger.debug("Opened channel", channel=name)
        return channel

    def close(self) -> None:
        """Mark the connection destroyed.

        Channels are not closed synchronously; they observe the flag on their
        next loop iteration.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self._metrics.gauge("channels.open", 0)
        self._logger.info("Connection closed", channels=len(self._channels))

    async def shutdown(self, timeout: float = 2.0) -> None:
        """Close the connection and wait for every channel's tail loop.

        Closed channels that were replaced by a newer one are awaited too.
        """
        self.close()
        channels = [*self._retired, *self._channels.values()]
        await asyncio.gather(*(ch.shutdown(timeout) for ch in channels))
        self._retired.clear()
