"""Factories wiring bounded stores into connections."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..ports.logger import LoggerPort
from ..ports.metrics import MetricsPort
from .config import ChannelOptions, NATSStoreConfig
from .in_memory_metrics import InMemoryMetrics
from .in_memory_store import InMemoryBoundedStore
from .nats_store import NATSBoundedStore

if TYPE_CHECKING:
    from ..application.connection import Connection


class ConnectionFactory:
    """Factory for connections over the supported bounded stores.

    The logger and metrics given to a factory method are shared by the store
    adapter, the connection and every channel it opens.
    """

    @staticmethod
    def create_in_memory(
        options: ChannelOptions | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> Connection:
        """Create a connection over a fresh in-memory store.

        Args:
            options: Default channel options
            logger: Optional logger port
            metrics: Optional metrics port

        Returns:
            Connection whose store is an InMemoryBoundedStore
        """
        from ..application.connection import Connection

        return Connection(InMemoryBoundedStore(logger=logger), options, logger, metrics)

    @staticmethod
    async def create_nats(
        config: NATSStoreConfig | None = None,
        options: ChannelOptions | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ) -> Connection:
        """Connect a NATS JetStream store and wrap it in a connection.

        Args:
            config: Store configuration. If not provided, uses defaults.
            options: Default channel options
            logger: Optional logger port
            metrics: Optional metrics port

        Returns:
            Connection whose store is a connected NATSBoundedStore
        """
        from ..application.connection import Connection

        metrics = metrics or InMemoryMetrics()
        store = NATSBoundedStore(config=config, metrics=metrics, logger=logger)
        await store.connect()
        return Connection(store, options, logger, metrics)
