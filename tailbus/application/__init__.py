"""Application layer - Channels, dispatch and the channel registry."""

from .channel import Channel
from .connection import Connection
from .dispatcher import EventDispatcher, Subscription

__all__ = ["Channel", "Connection", "EventDispatcher", "Subscription"]
