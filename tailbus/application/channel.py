"""Channel - publish/subscribe over one bounded collection.

A channel provisions its collection, finds the point to start tailing from,
then runs a single background task that reads new records from a tailing
cursor and dispatches them to local subscribers in insertion order. When the
cursor breaks, the channel recreates it and resumes strictly after the last
record it has seen.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

from ..domain.enums import ChannelState
from ..domain.exceptions import (
    BrokenCursorError,
    CollectionAlreadyExistsError,
    ProvisioningError,
    StoreError,
    TailbusError,
)
from ..domain.models import (
    DEFAULT_CHANNEL_NAME,
    DOCUMENT_EVENT,
    ERROR_EVENT,
    MESSAGE_EVENT,
    READY_EVENT,
    RESERVED_EVENTS,
    Record,
)
from ..domain.types import Subscriber
from ..infrastructure.config import ChannelOptions, LogContext
from ..ports.bounded_store import BoundedStorePort, CollectionHandle, TailCursor
from ..ports.logger import LoggerPort
from ..ports.metrics import MetricsPort
from .dispatcher import EventDispatcher, Subscription


def _never_destroyed() -> bool:
    return False


class Channel:
    """Publish/subscribe channel backed by a bounded collection.

    Creating a channel starts its tail loop on the running event loop. The
    loop provisions the collection, bootstraps the resume point and then
    dispatches every new record:

    - under its own event name and under ``message``, with the payload,
      when the record carries an event name
    - under ``document``, with the raw Record, for every record

    Bootstrap markers are never dispatched. Failures are reported on the
    ``error`` event and the ``ready`` event fires each time tailing starts.
    """

    def __init__(
        self,
        store: BoundedStorePort,
        name: str = DEFAULT_CHANNEL_NAME,
        options: ChannelOptions | None = None,
        *,
        is_destroyed: Callable[[], bool] | None = None,
        logger: LoggerPort | None = None,
        metrics: MetricsPort | None = None,
    ):
        """Initialize the channel and start its tail loop.

        Args:
            store: Bounded store the collection lives in
            name: Channel and collection name
            options: Collection and tailing options
            is_destroyed: Predicate telling whether the owning connection is gone
            logger: Optional logger port. If not provided, uses simple logger.
            metrics: Optional metrics port. If not provided, uses in-memory metrics.

        Raises:
            RuntimeError: If there is no running event loop
        """
        self._store = store
        self._name = name or DEFAULT_CHANNEL_NAME
        self._options = options or ChannelOptions()
        self._is_destroyed = is_destroyed or _never_destroyed
        self._logger = logger or self._create_default_logger()
        self._metrics = metrics or self._create_default_metrics()
        self._dispatcher = EventDispatcher(logger=self._logger, source=self._name)
        self._log_ctx = LogContext(channel=self._name, component="Channel")

        self._state = ChannelState.PROVISIONING
        self._closed = False
        self._collection: CollectionHandle | None = None
        self._cursor: TailCursor | None = None
        self._last_seen_id: int | None = None
        self._generation: Any = None
        self._ready = asyncio.Event()
        self._task: asyncio.Task | None = asyncio.get_running_loop().create_task(
            self._run(), name=f"tailbus-channel-{self._name}"
        )

    def _create_default_logger(self) -> LoggerPort:
        """Create a default logger if none provided."""
        from ..infrastructure.simple_logger import SimpleLogger

        return SimpleLogger("tailbus.channel")

    def _create_default_metrics(self) -> MetricsPort:
        """Create default metrics if none provided."""
        from ..infrastructure.in_memory_metrics import InMemoryMetrics

        return InMemoryMetrics()

    # Properties
    @property
    def name(self) -> str:
        """Channel name, also the collection name."""
        return self._name

    @property
    def options(self) -> ChannelOptions:
        """Channel options."""
        return self._options

    @property
    def state(self) -> ChannelState:
        """Current lifecycle state."""
        return self._state

    @property
    def closed(self) -> bool:
        """Whether ``close()`` was called."""
        return self._closed

    @property
    def is_ready(self) -> bool:
        """Whether the channel has started tailing at least once."""
        return self._ready.is_set()

    @property
    def done(self) -> bool:
        """Whether the tail loop has finished."""
        return self._task is None or self._task.done()

    @property
    def last_seen_id(self) -> int | None:
        """Id of the last record read by the tail loop."""
        return self._last_seen_id

    @property
    def dispatcher(self) -> EventDispatcher:
        """The channel's event dispatcher."""
        return self._dispatcher

    def _should_stop(self) -> bool:
        return self._closed or self._is_destroyed()

    # Public API
    async def ready(self) -> None:
        """Wait until the channel has started tailing."""
        await self._ready.wait()

    async def _wait_until_ready(self) -> None:
        """Wait for readiness, failing if the tail loop ends first."""
        if self._ready.is_set():
            return
        ready = asyncio.ensure_future(self._ready.wait())
        try:
            await asyncio.wait({ready, self._task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            ready.cancel()
        if not self._ready.is_set():
            raise StoreError(
                f"Channel '{self._name}' is {self._state.value} and will never be ready",
                collection=self._name,
                operation="insert",
            )

    def subscribe(
        self,
        event: str | Subscriber | None = None,
        callback: Subscriber | None = None,
    ) -> Subscription:
        """Subscribe to an event.

        ``subscribe(callback)`` subscribes to the generic ``message`` event,
        which fires for every published record regardless of its name.

        Args:
            event: Event name, or the callback itself
            callback: Plain callable or coroutine function

        Returns:
            Subscription whose ``unsubscribe()`` removes this registration
        """
        if callback is None and callable(event):
            event, callback = None, event
        if callback is None:
            raise TypeError("subscribe() requires a callback")
        return self._dispatcher.subscribe(event, callback)

    async def publish(self, event: str, payload: Any = None) -> Record:
        """Publish an event.

        Waits until the channel is ready, then durably inserts the record.
        A channel that stops or fails before becoming ready rejects the call.

        Args:
            event: Event name
            payload: Application value delivered to subscribers

        Returns:
            The stored record, including its store-assigned id

        Raises:
            ValueError: If the event name is empty or reserved
            StoreError: If the insert failed or the channel stopped before it
                became ready
        """
        if not isinstance(event, str) or not event.strip():
            raise ValueError("Event name must be a non-empty string")
        if event in RESERVED_EVENTS:
            raise ValueError(
                f"Event name '{event}' is reserved. "
                f"Reserved names: {', '.join(sorted(RESERVED_EVENTS))}"
            )

        await self._wait_until_ready()
        collection = self._collection
        if collection is None:
            raise StoreError(
                f"Channel '{self._name}' has no collection",
                collection=self._name,
                operation="insert",
            )

        with self._metrics.timer(f"channel.{self._name}.publish"):
            try:
                record = await collection.insert(event, payload, durable=True)
            except TailbusError:
                self._metrics.increment(f"channel.{self._name}.publish.error")
                raise
            except Exception as e:
                self._metrics.increment(f"channel.{self._name}.publish.error")
                raise StoreError(
                    f"Failed to publish '{event}' on channel '{self._name}': {e}",
                    collection=self._name,
                    operation="insert",
                ) from e

        self._metrics.increment(f"channel.{self._name}.published")
        return record

    def close(self) -> None:
        """Close the channel.

        Dispatch stops at the next loop iteration; a pending read is not
        interrupted. Closing is terminal.
        """
        if self._closed:
            return
        self._closed = True
        self._logger.info("Channel closed", **self._log_ctx.with_operation("close").to_dict())

    async def shutdown(self, timeout: float = 2.0) -> None:
        """Close the channel and wait for its tail loop to finish.

        The loop is cancelled if it does not quiesce within ``timeout``.
        """
        self.close()
        if self._task is None or self._task.done():
            return
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except TimeoutError:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    # Tail loop
    async def _run(self) -> None:
        """Provision, bootstrap and tail until stopped."""
        try:
            if not await self._ensure_collection() or not await self._bootstrap():
                if not self._should_stop():
                    self._state = ChannelState.FAILED
                return

            while await self._tail():
                self._state = ChannelState.BROKEN
                self._metrics.increment(f"channel.{self._name}.broken")
                await self._report(BrokenCursorError(self._name, self._last_seen_id))
                if not await self._recover():
                    break
        finally:
            if not self._state.is_terminal():
                self._state = ChannelState.STOPPED
            self._logger.debug(
                "Channel tail loop finished",
                **LogContext(
                    channel=self._name,
                    component="Channel",
                    operation="tail",
                    last_seen_id=self._last_seen_id,
                ).to_dict(),
            )

    async def _ensure_collection(self) -> bool:
        """Create the collection if absent, retrying on creation races."""
        self._state = ChannelState.PROVISIONING
        while not self._should_stop():
            try:
                self._collection = await self._store.create_bounded_collection(
                    self._name,
                    capacity_bytes=self._options.capacity_bytes,
                    max_count=self._options.max_count,
                )
                return True
            except CollectionAlreadyExistsError:
                self._logger.debug(
                    "Collection creation raced, retrying",
                    **self._log_ctx.with_operation("provision").to_dict(),
                )
                await asyncio.sleep(self._options.retry_interval)
            except Exception as e:
                error = ProvisioningError(
                    f"Failed to provision channel '{self._name}': {e}", channel=self._name
                )
                error.__cause__ = e
                await self._report(error)
                return False
        return False

    async def _find_resume_point(self, resume_id: int | None) -> int:
        """Find the id to tail after, seeding a marker into an empty collection."""
        collection = self._collection
        generation, self._generation = self._generation, collection.generation
        if resume_id is not None and generation != collection.generation:
            # Recreated collection: its ids restart and none of its records were seen
            self._logger.info(
                "Collection was recreated, tailing from its first record",
                **LogContext(
                    channel=self._name, operation="bootstrap", last_seen_id=resume_id
                ).to_dict(),
            )
            return 0
        if resume_id is not None:
            if await collection.find_latest(resume_id) is not None:
                return resume_id
            latest = await collection.find_latest()
            # The resume record was evicted but newer records remain ahead of it
            if latest is not None and latest.id > resume_id:
                return resume_id
        else:
            latest = await collection.find_latest()

        if latest is not None:
            return latest.id

        marker = await collection.insert(None, None, bootstrap_marker=True, durable=True)
        self._metrics.increment(f"channel.{self._name}.markers")
        self._logger.debug(
            "Seeded bootstrap marker",
            **LogContext(
                channel=self._name, operation="bootstrap", last_seen_id=marker.id
            ).to_dict(),
        )
        return marker.id

    async def _bootstrap(self, resume_id: int | None = None) -> bool:
        """Set the resume point of the next tailing cursor."""
        if self._should_stop():
            return False
        self._state = ChannelState.BOOTSTRAPPING
        try:
            self._last_seen_id = await self._find_resume_point(resume_id)
        except Exception as e:
            await self._report(e)
            return False
        return True

    async def _tail(self) -> bool:
        """Dispatch records until stopped or the cursor breaks.

        Returns:
            True if the cursor broke, False if the channel stopped
        """
        if self._should_stop():
            return False

        self._cursor = self._collection.tail(self._last_seen_id, self._options.retry_interval)
        self._state = ChannelState.TAILING
        self._ready.set()
        self._logger.info(
            "Channel tailing",
            **LogContext(
                channel=self._name,
                component="Channel",
                operation="tail",
                last_seen_id=self._last_seen_id,
            ).to_dict(),
        )
        await self._dispatcher.dispatch(READY_EVENT, self._name)

        try:
            while not self._should_stop():
                try:
                    record = await self._cursor.next()
                except TimeoutError:
                    continue
                except Exception as e:
                    await self._report(e)
                    return True

                # Stop silently, dropping the record
                if self._should_stop():
                    return False
                if record is None:
                    return True

                if not record.bootstrap_marker:
                    await self._dispatch_record(record)
                self._last_seen_id = record.id
            return False
        finally:
            cursor, self._cursor = self._cursor, None
            try:
                await cursor.close()
            except Exception as e:
                await self._report(e)

    async def _dispatch_record(self, record: Record) -> None:
        if record.is_message():
            await self._dispatcher.dispatch(record.event, record.payload)
            await self._dispatcher.dispatch(MESSAGE_EVENT, record.payload)
        await self._dispatcher.dispatch(DOCUMENT_EVENT, record)
        self._metrics.increment(f"channel.{self._name}.dispatched")

    async def _recover(self) -> bool:
        """Recreate the collection and cursor after a break.

        Returns:
            True if tailing can resume, False if the channel goes dormant
        """
        while True:
            await asyncio.sleep(self._options.recreate_delay)
            if self._should_stop():
                return False
            if not self._options.recreate:
                self._logger.warning(
                    "Cursor broken and recreate disabled, channel is dormant",
                    **LogContext(
                        channel=self._name,
                        operation="recover",
                        last_seen_id=self._last_seen_id,
                    ).to_dict(),
                )
                return False

            if await self._ensure_collection() and await self._bootstrap(self._last_seen_id):
                self._metrics.increment(f"channel.{self._name}.recreated")
                return True
            if self._should_stop():
                return False

    async def _report(self, error: Exception) -> None:
        """Log an error and notify ``error`` subscribers."""
        if self._should_stop():
            return
        self._metrics.increment(f"channel.{self._name}.errors")
        self._logger.error(f"Channel error: {error}", **self._log_ctx.with_error(error).to_dict())
        await self._dispatcher.dispatch(ERROR_EVENT, error)

    def __repr__(self) -> str:
        return f"<Channel name={self._name!r} state={self._state.value}>"
