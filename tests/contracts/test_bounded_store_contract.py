"""Contract tests for BoundedStorePort implementations.

These tests define the contract that all BoundedStorePort implementations
must satisfy, ensuring channels behave the same over every adapter.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod

import pytest
import pytest_asyncio

from tailbus.infrastructure.in_memory_store import InMemoryBoundedStore
from tailbus.ports.bounded_store import BoundedStorePort

RETRY_INTERVAL = 0.2


class BoundedStoreContractTest(ABC):
    """Abstract base class for BoundedStorePort contract tests.

    Concrete test classes should inherit from this and implement
    create_store to provide their specific implementation.
    """

    @abstractmethod
    async def create_store(self) -> BoundedStorePort:
        """Create a BoundedStorePort implementation for testing."""
        ...

    async def close_store(self, store: BoundedStorePort) -> None:
        """Release the store after a test."""

    @pytest_asyncio.fixture
    async def bounded_store(self):
        """Fixture that provides a BoundedStorePort instance."""
        store = await self.create_store()
        yield store
        await self.close_store(store)

    @pytest.fixture
    def name(self) -> str:
        """Unique collection name so tests never share records."""
        return f"contract-{uuid.uuid4().hex[:12]}"

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, bounded_store, name):
        """Test that both handles of a created collection see the same records."""
        first = await bounded_store.create_bounded_collection(name, 64 * 1024)
        second = await bounded_store.create_bounded_collection(name, 64 * 1024)

        record = await first.insert("x", {"n": 1})

        assert await second.find_latest() == record
        assert second.name == name

    @pytest.mark.asyncio
    async def test_ids_increase_in_insertion_order(self, bounded_store, name):
        """Test that record ids grow strictly with every insert."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)

        records = [await collection.insert("x", i) for i in range(5)]

        ids = [r.id for r in records]
        assert ids == sorted(set(ids))

    @pytest.mark.asyncio
    async def test_find_latest(self, bounded_store, name):
        """Test latest-record and by-id queries."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)
        assert await collection.find_latest() is None

        first = await collection.insert("x", "a")
        latest = await collection.insert("y", "b")

        assert await collection.find_latest() == latest
        assert await collection.find_latest(first.id) == first
        assert await collection.find_latest(latest.id + 1000) is None

    @pytest.mark.asyncio
    async def test_marker_round_trip(self, bounded_store, name):
        """Test that bootstrap markers are stored as markers."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)

        marker = await collection.insert(None, None, bootstrap_marker=True)
        stored = await collection.find_latest()

        assert stored.id == marker.id
        assert stored.bootstrap_marker
        assert stored.event is None

    @pytest.mark.asyncio
    async def test_non_string_map_keys_round_trip(self, bounded_store, name):
        """Test that payload maps keyed by numbers are read back intact."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)
        payload = {1: "a", 2: {3: "b"}}
        record = await collection.insert("x", payload)
        cursor = collection.tail(record.id - 1, RETRY_INTERVAL)

        try:
            assert (await collection.find_latest()).payload == payload
            assert (await asyncio.wait_for(cursor.next(), timeout=5.0)).payload == payload
        finally:
            await cursor.close()

    @pytest.mark.asyncio
    async def test_count_cap_evicts_oldest(self, bounded_store, name):
        """Test that records past the count cap are evicted oldest first."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024, max_count=3)

        records = [await collection.insert("x", i) for i in range(5)]

        assert await collection.find_latest(records[0].id) is None
        assert await collection.find_latest(records[1].id) is None
        assert await collection.find_latest(records[2].id) == records[2]

    @pytest.mark.asyncio
    async def test_tail_yields_records_after_id(self, bounded_store, name):
        """Test that a cursor returns only newer records, in order."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)
        first = await collection.insert("x", 1)
        second = await collection.insert("x", 2)
        cursor = collection.tail(first.id, RETRY_INTERVAL)

        try:
            assert await cursor.next() == second
            third = await collection.insert("x", 3)
            assert await asyncio.wait_for(cursor.next(), timeout=5.0) == third
        finally:
            await cursor.close()

    @pytest.mark.asyncio
    async def test_idle_tail_times_out(self, bounded_store, name):
        """Test that an idle cursor read raises TimeoutError and stays usable."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)
        latest = await collection.insert("x", 1)
        cursor = collection.tail(latest.id, RETRY_INTERVAL)

        try:
            with pytest.raises(TimeoutError):
                await cursor.next()
            record = await collection.insert("x", 2)
            assert await asyncio.wait_for(cursor.next(), timeout=5.0) == record
        finally:
            await cursor.close()

    @pytest.mark.asyncio
    async def test_closed_cursor_returns_none(self, bounded_store, name):
        """Test that reading a closed cursor ends it."""
        collection = await bounded_store.create_bounded_collection(name, 64 * 1024)
        cursor = collection.tail(0, RETRY_INTERVAL)

        await cursor.close()
        await cursor.close()

        assert await cursor.next() is None


class TestInMemoryBoundedStoreContract(BoundedStoreContractTest):
    """Run the contract against the in-memory store."""

    async def create_store(self) -> BoundedStorePort:
        """Create an in-memory store."""
        return InMemoryBoundedStore()

    async def close_store(self, store: BoundedStorePort) -> None:
        """Close the in-memory store."""
        await store.close()
