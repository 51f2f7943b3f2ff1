"""Domain layer - Records, states and errors."""

from .enums import ChannelState, ConnectionState, StorageType
from .exceptions import (
    BrokenCursorError,
    ChannelError,
    CollectionAlreadyExistsError,
    ProvisioningError,
    SerializationError,
    StoreError,
    SubscriberError,
    TailbusError,
)
from .models import (
    DEFAULT_CHANNEL_NAME,
    DOCUMENT_EVENT,
    ERROR_EVENT,
    MESSAGE_EVENT,
    READY_EVENT,
    RESERVED_EVENTS,
    Record,
)
from .patterns import StreamPatterns
from .types import Subscriber

__all__ = [
    "DEFAULT_CHANNEL_NAME",
    "DOCUMENT_EVENT",
    "ERROR_EVENT",
    "MESSAGE_EVENT",
    "READY_EVENT",
    "RESERVED_EVENTS",
    # Exceptions
    "BrokenCursorError",
    "ChannelError",
    # Enums
    "ChannelState",
    "CollectionAlreadyExistsError",
    "ConnectionState",
    "ProvisioningError",
    # Models
    "Record",
    "SerializationError",
    "StorageType",
    "StoreError",
    "StreamPatterns",
    # Types
    "Subscriber",
    "SubscriberError",
    "TailbusError",
]
