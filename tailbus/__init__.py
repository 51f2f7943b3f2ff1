"""tailbus - Publish/subscribe channels over tailable bounded collections."""

from .application.channel import Channel
from .application.connection import Connection
from .application.dispatcher import Subscription
from .domain.models import Record
from .infrastructure.config import ChannelOptions, NATSStoreConfig
from .infrastructure.factories import ConnectionFactory
from .infrastructure.in_memory_store import InMemoryBoundedStore
from .infrastructure.nats_store import NATSBoundedStore

__all__ = [
    "Channel",
    "ChannelOptions",
    "Connection",
    "ConnectionFactory",
    "InMemoryBoundedStore",
    "NATSBoundedStore",
    "NATSStoreConfig",
    "Record",
    "Subscription",
]
__version__ = "0.1.0"
