"""Infrastructure layer - Concrete implementations of ports."""

from .config import ChannelOptions, LogContext, NATSStoreConfig
from .factories import ConnectionFactory
from .in_memory_metrics import InMemoryMetrics
from .in_memory_store import InMemoryBoundedStore, InMemoryCollection
from .nats_store import NATSBoundedStore, NATSCollection
from .simple_logger import SimpleLogger

__all__ = [
    "ChannelOptions",
    "ConnectionFactory",
    "InMemoryBoundedStore",
    "InMemoryCollection",
    "InMemoryMetrics",
    "LogContext",
    "NATSBoundedStore",
    "NATSCollection",
    "NATSStoreConfig",
    "SimpleLogger",
]
