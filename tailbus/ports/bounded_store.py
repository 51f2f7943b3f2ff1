"""Bounded store interface - Port definition for the record store.

A bounded store keeps append-only, size and/or count capped collections of
records and can open tailing cursors on them: cursors that wait for new
records instead of signalling end of stream.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..domain.models import Record


class TailCursor(ABC):
    """A blocking cursor over the records of one collection."""

    @abstractmethod
    async def next(self) -> Record | None:
        """Wait up to one retry interval for the next record.

        Returns:
            The next record in insertion order, or None when the cursor was
            closed underneath the reader (collection dropped, connection lost).

        Raises:
            TimeoutError: If no record arrived within the retry interval;
                the cursor stays open and the read can be repeated
            StoreError: If the read failed
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the cursor. Safe to call more than once."""
        ...


class CollectionHandle(ABC):
    """Handle to a single bounded collection."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Collection name."""
        ...

    @property
    def generation(self) -> Any:
        """Identity of this incarnation of the collection.

        Changes when the collection is dropped and created again. Stores
        that restart ids on recreation must implement it so readers know
        their resume point no longer applies. None means never tracked.
        """
        return None

    @abstractmethod
    async def insert(
        self,
        event: str | None,
        payload: Any = None,
        *,
        bootstrap_marker: bool = False,
        durable: bool = True,
    ) -> Record:
        """Append a record and return it with its store-assigned id.

        Args:
            event: Event name, None for bootstrap markers
            payload: Opaque application value
            bootstrap_marker: Whether this is a synthetic bootstrap record
            durable: Wait for the store to acknowledge the write

        Raises:
            StoreError: If the insert failed
        """
        ...

    @abstractmethod
    async def find_latest(self, record_id: int | None = None) -> Record | None:
        """Return the most recently inserted record.

        Args:
            record_id: When given, only the record with exactly this id matches

        Returns:
            The record, or None if the collection is empty or has no match

        Raises:
            StoreError: If the query failed
        """
        ...

    @abstractmethod
    def tail(self, after_id: int, retry_interval: float) -> TailCursor:
        """Open a tailing cursor yielding records with ``id > after_id``.

        Args:
            after_id: Resume point; the record with this id is not returned
            retry_interval: Seconds between polls when no record is available
        """
        ...


class BoundedStorePort(ABC):
    """Abstract interface for creating bounded collections."""

    @abstractmethod
    async def create_bounded_collection(
        self, name: str, capacity_bytes: int, max_count: int | None = None
    ) -> CollectionHandle:
        """Create the collection if absent and return a handle to it.

        Creating an existing collection returns a handle to it.

        Raises:
            CollectionAlreadyExistsError: If a concurrent creation raced this
                one; the call may be retried
            StoreError: For any other creation failure
        """
        ...
