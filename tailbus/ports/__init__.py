"""Ports layer - Interfaces for external collaborators."""

from .bounded_store import BoundedStorePort, CollectionHandle, TailCursor
from .logger import LoggerPort
from .metrics import MetricsPort

__all__ = [
    "BoundedStorePort",
    "CollectionHandle",
    "LoggerPort",
    "MetricsPort",
    "TailCursor",
]
