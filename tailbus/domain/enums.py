"""Domain enums for type safety and consistency.

This module centralizes the enumeration types used across tailbus,
ensuring type safety and preventing string literal errors.
"""

from enum import Enum


class ChannelState(str, Enum):
    """Channel lifecycle state.

    A channel moves PROVISIONING -> BOOTSTRAPPING -> TAILING, drops to
    BROKEN while its cursor is being recreated and ends in STOPPED or FAILED.
    """

    PROVISIONING = "PROVISIONING"  # Creating the bounded collection
    BOOTSTRAPPING = "BOOTSTRAPPING"  # Finding or seeding the resume point
    TAILING = "TAILING"  # Blocking on the tailing cursor
    BROKEN = "BROKEN"  # Cursor lost, waiting to recreate
    STOPPED = "STOPPED"  # Closed, connection destroyed or dormant
    FAILED = "FAILED"  # Provisioning or bootstrap failed, never ready

    def is_terminal(self) -> bool:
        """Check if no further dispatch can happen from this state."""
        return self in (ChannelState.STOPPED, ChannelState.FAILED)


class ConnectionState(str, Enum):
    """Connection state as reported by ``Connection.state``."""

    CONNECTED = "connected"
    DESTROYED = "destroyed"


class StorageType(str, Enum):
    """Storage backend of a JetStream stream."""

    FILE = "file"
    MEMORY = "memory"
