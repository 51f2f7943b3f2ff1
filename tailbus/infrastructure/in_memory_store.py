"""In-memory implementation of the BoundedStorePort.

This is an infrastructure adapter for testing and development. Collections
live in process memory, evict their oldest records when they exceed their
byte or count cap, and wake tailing cursors through an asyncio.Condition.
"""

from __future__ import annotations

import asyncio
from bisect import bisect_left, bisect_right
from typing import Any

from ..domain.exceptions import StoreError
from ..domain.models import Record
from ..ports.bounded_store import BoundedStorePort, CollectionHandle, TailCursor
from ..ports.logger import LoggerPort
from .serialization import body_size


def _record_id(record: Record) -> int:
    return record.id


class InMemoryTailCursor(TailCursor):
    """Tailing cursor over an in-memory collection."""

    def __init__(self, collection: InMemoryCollection, after_id: int, retry_interval: float):
        self._collection = collection
        self._position = after_id
        self._retry_interval = retry_interval
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the cursor was closed or its collection dropped."""
        return self._closed or self._collection.dropped

    def _advance(self) -> Record | None:
        record = self._collection._first_after(self._position)
        if record is not None:
            self._position = record.id
        return record

    async def next(self) -> Record | None:
        """Wait up to one retry interval for the next record."""
        if self.closed:
            return None
        record = self._advance()
        if record is not None:
            return record

        condition = self._collection._condition
        async with condition:
            # Re-check under the lock so a notify cannot slip in between
            if not self.closed and self._collection._first_after(self._position) is None:
                try:
                    await asyncio.wait_for(condition.wait(), timeout=self._retry_interval)
                except TimeoutError:
                    pass

        if self.closed:
            return None
        record = self._advance()
        if record is None:
            raise TimeoutError(f"No record within {self._retry_interval}s")
        return record

    async def close(self) -> None:
        """Close the cursor and wake a pending read."""
        if self._closed:
            return
        self._closed = True
        self._collection._cursors.discard(self)
        async with self._collection._condition:
            self._collection._condition.notify_all()


class InMemoryCollection(CollectionHandle):
    """A bounded, append-only collection kept in memory."""

    def __init__(
        self,
        store: InMemoryBoundedStore,
        name: str,
        capacity_bytes: int,
        max_count: int | None = None,
        generation: int = 0,
    ):
        self._store = store
        self._name = name
        self._generation = generation
        self._capacity_bytes = capacity_bytes
        self._max_count = max_count
        self._records: list[Record] = []
        self._sizes: list[int] = []
        self._total_bytes = 0
        self._condition = asyncio.Condition()
        self._cursors: set[InMemoryTailCursor] = set()
        self._dropped = False

    @property
    def name(self) -> str:
        """Collection name."""
        return self._name

    @property
    def generation(self) -> int:
        """Creation number of this collection within its store."""
        return self._generation

    @property
    def dropped(self) -> bool:
        """Whether the collection was dropped from its store."""
        return self._dropped

    @property
    def capacity_bytes(self) -> int:
        """Byte cap of the collection."""
        return self._capacity_bytes

    @property
    def max_count(self) -> int | None:
        """Record count cap of the collection."""
        return self._max_count

    def records(self) -> list[Record]:
        """Get all retained records in insertion order (useful for testing)."""
        return list(self._records)

    def _first_after(self, position: int) -> Record | None:
        index = bisect_right(self._records, position, key=_record_id)
        if index < len(self._records):
            return self._records[index]
        return None

    def _evict(self) -> None:
        while self._records and (
            self._total_bytes > self._capacity_bytes
            or (self._max_count is not None and len(self._records) > self._max_count)
        ):
            self._records.pop(0)
            self._total_bytes -= self._sizes.pop(0)

    def _ensure_available(self, operation: str) -> None:
        if self._dropped:
            raise StoreError(
                f"Collection '{self._name}' was dropped",
                collection=self._name,
                operation=operation,
            )
        if self._store.closed:
            raise StoreError("Store is closed", collection=self._name, operation=operation)

    async def insert(
        self,
        event: str | None,
        payload: Any = None,
        *,
        bootstrap_marker: bool = False,
        durable: bool = True,
    ) -> Record:
        """Append a record, evicting the oldest ones past the caps."""
        self._ensure_available("insert")

        size = body_size(event, payload, bootstrap_marker)
        if size > self._capacity_bytes:
            raise StoreError(
                f"Record of {size} bytes exceeds capacity of collection '{self._name}'",
                collection=self._name,
                operation="insert",
            )

        # Id assignment and append happen without yielding, so inserts are atomic
        record = Record(
            id=self._store._next_id(),
            event=event,
            payload=payload,
            bootstrap_marker=bootstrap_marker,
        )
        self._records.append(record)
        self._sizes.append(size)
        self._total_bytes += size
        self._evict()

        async with self._condition:
            self._condition.notify_all()
        return record

    async def find_latest(self, record_id: int | None = None) -> Record | None:
        """Return the newest record, or the record with ``record_id``."""
        self._ensure_available("find_latest")

        if not self._records:
            return None
        if record_id is None:
            return self._records[-1]

        index = bisect_left(self._records, record_id, key=_record_id)
        if index < len(self._records) and self._records[index].id == record_id:
            return self._records[index]
        return None

    def tail(self, after_id: int, retry_interval: float) -> TailCursor:
        """Open a tailing cursor yielding records with ``id > after_id``."""
        cursor = InMemoryTailCursor(self, after_id, retry_interval)
        self._cursors.add(cursor)
        return cursor

    async def interrupt_cursors(self) -> None:
        """End every open cursor without touching the records."""
        for cursor in list(self._cursors):
            await cursor.close()

    async def _drop(self) -> None:
        self._dropped = True
        await self.interrupt_cursors()


class InMemoryBoundedStore(BoundedStorePort):
    """In-memory implementation of BoundedStorePort for testing.

    Record ids come from a store-wide counter, so they keep increasing even
    across a drop and recreate of the same collection.
    """

    def __init__(self, logger: LoggerPort | None = None) -> None:
        self._collections: dict[str, InMemoryCollection] = {}
        self._last_id = 0
        self._created = 0
        self._closed = False
        self._logger = logger

    @property
    def closed(self) -> bool:
        """Whether the store was closed."""
        return self._closed

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    async def create_bounded_collection(
        self, name: str, capacity_bytes: int, max_count: int | None = None
    ) -> CollectionHandle:
        """Create the collection if absent and return a handle to it."""
        if self._closed:
            raise StoreError("Store is closed", collection=name, operation="create")
        if capacity_bytes <= 0:
            raise StoreError(
                f"Invalid capacity {capacity_bytes} for collection '{name}'",
                collection=name,
                operation="create",
            )

        collection = self._collections.get(name)
        if collection is None:
            self._created += 1
            collection = InMemoryCollection(
                self, name, capacity_bytes, max_count, generation=self._created
            )
            self._collections[name] = collection
            if self._logger:
                self._logger.debug(
                    "Created bounded collection",
                    collection=name,
                    capacity_bytes=capacity_bytes,
                    max_count=max_count,
                )
        return collection

    def get_collection(self, name: str) -> InMemoryCollection | None:
        """Get a collection by name (useful for testing)."""
        return self._collections.get(name)

    async def drop_collection(self, name: str) -> None:
        """Drop a collection, ending its open cursors."""
        collection = self._collections.pop(name, None)
        if collection is not None:
            await collection._drop()
            if self._logger:
                self._logger.debug("Dropped bounded collection", collection=name)

    async def interrupt_cursors(self, name: str) -> None:
        """End the open cursors of a collection, keeping its records."""
        collection = self._collections.get(name)
        if collection is not None:
            await collection.interrupt_cursors()

    async def close(self) -> None:
        """Close the store; every open cursor ends."""
        self._closed = True
        for collection in self._collections.values():
            await collection.interrupt_cursors()
