"""NATS JetStream adapter - Concrete implementation of BoundedStorePort.

Each collection is a JetStream stream with LIMITS retention, capped by
``max_bytes`` and ``max_msgs`` and discarding its oldest messages. The stream
sequence of a message is the record id, ``stream_info`` plus ``get_msg``
answer latest-record queries, and an ordered push consumer starting at
``after_id + 1`` serves as the tailing cursor.
"""

from __future__ import annotations

import os
import time
from typing import Any

import nats
from nats.aio.client import Client as NATSClient
from nats.errors import BadSubscriptionError, ConnectionClosedError
from nats.errors import TimeoutError as NATSTimeoutError
from nats.js import JetStreamContext, api
from nats.js.errors import BadRequestError, NotFoundError

from ..domain.exceptions import (
    CollectionAlreadyExistsError,
    SerializationError,
    StoreError,
)
from ..domain.models import Record
from ..domain.patterns import StreamPatterns
from ..ports.bounded_store import BoundedStorePort, CollectionHandle, TailCursor
from ..ports.logger import LoggerPort
from ..ports.metrics import MetricsPort
from .config import LogContext, NATSStoreConfig
from .in_memory_metrics import InMemoryMetrics
from .serialization import decode_record, encode_body
from .simple_logger import SimpleLogger

# JetStream API error: stream name already in use with a different configuration
STREAM_NAME_IN_USE = 10058

# Seconds between checks that the stream behind an idle cursor still exists
STREAM_CHECK_INTERVAL = 5.0


class NATSTailCursor(TailCursor):
    """Tailing cursor backed by an ordered JetStream push consumer."""

    def __init__(self, collection: NATSCollection, after_id: int, retry_interval: float):
        self._collection = collection
        self._after_id = after_id
        self._retry_interval = retry_interval
        self._sub: JetStreamContext.PushSubscription | None = None
        self._closed = False
        self._last_stream_check = time.monotonic()

    async def _subscribe(self) -> JetStreamContext.PushSubscription:
        config = api.ConsumerConfig(
            deliver_policy=api.DeliverPolicy.BY_START_SEQUENCE,
            opt_start_seq=self._after_id + 1,
        )
        try:
            return await self._collection._js.subscribe(
                self._collection.subject,
                stream=self._collection.stream,
                ordered_consumer=True,
                config=config,
            )
        except Exception as e:
            raise StoreError(
                f"Failed to open tailing cursor: {e}",
                collection=self._collection.name,
                operation="tail",
            ) from e

    async def _stream_gone(self) -> bool:
        now = time.monotonic()
        if now - self._last_stream_check < STREAM_CHECK_INTERVAL:
            return False
        self._last_stream_check = now
        try:
            await self._collection._js.stream_info(self._collection.stream)
        except (NotFoundError, ConnectionClosedError):
            return True
        except Exception as e:
            raise StoreError(
                f"Failed to check stream: {e}",
                collection=self._collection.name,
                operation="tail",
            ) from e
        return False

    async def next(self) -> Record | None:
        """Wait up to one retry interval for the next record."""
        if self._closed:
            return None
        if self._sub is None:
            self._sub = await self._subscribe()

        while not self._closed:
            try:
                msg = await self._sub.next_msg(timeout=self._retry_interval)
            except NATSTimeoutError:
                if self._collection._nc.is_closed or await self._stream_gone():
                    return None
                raise TimeoutError(f"No record within {self._retry_interval}s") from None
            except (ConnectionClosedError, BadSubscriptionError):
                return None

            try:
                record = decode_record(msg.metadata.sequence.stream, msg.data)
            except SerializationError as e:
                # Foreign payloads on the subject are not records
                self._collection._logger.warning(
                    "Skipping undecodable message",
                    collection=self._collection.name,
                    sequence=msg.metadata.sequence.stream,
                    error=str(e),
                )
                continue
            self._after_id = record.id
            return record
        return None

    async def close(self) -> None:
        """Unsubscribe the consumer. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._sub is not None:
            try:
                await self._sub.unsubscribe()
            except (ConnectionClosedError, BadSubscriptionError):
                pass


class NATSCollection(CollectionHandle):
    """Handle to the JetStream stream backing one collection."""

    def __init__(
        self,
        nc: NATSClient,
        js: JetStreamContext,
        name: str,
        config: NATSStoreConfig,
        logger: LoggerPort,
        metrics: MetricsPort,
        generation: Any = None,
    ):
        self._nc = nc
        self._js = js
        self._name = name
        self._config = config
        self._logger = logger
        self._metrics = metrics
        self.stream = StreamPatterns.stream(config.stream_prefix, name)
        self.subject = StreamPatterns.subject(config.subject_prefix, name)
        self._generation = generation

    @property
    def name(self) -> str:
        """Collection name."""
        return self._name

    @property
    def generation(self) -> Any:
        """Creation time of the backing stream; sequences restart with it."""
        return self._generation

    async def insert(
        self,
        event: str | None,
        payload: Any = None,
        *,
        bootstrap_marker: bool = False,
        durable: bool = True,
    ) -> Record:
        """Publish a record and return it with its stream sequence as id.

        JetStream acknowledges every publish; a durable insert additionally
        pins the expected stream so a misrouted subject fails the write.
        """
        body = encode_body(event, payload, bootstrap_marker, self._config.use_msgpack)

        with self._metrics.timer(f"store.insert.{self._name}"):
            try:
                ack = await self._js.publish(
                    self.subject,
                    body,
                    timeout=self._config.publish_timeout,
                    stream=self.stream if durable else None,
                )
            except Exception as e:
                self._metrics.increment("store.insert.error")
                raise StoreError(
                    f"Failed to insert into '{self._name}': {e}",
                    collection=self._name,
                    operation="insert",
                ) from e

        return Record(
            id=ack.seq,
            event=event,
            payload=payload,
            bootstrap_marker=bootstrap_marker,
        )

    async def find_latest(self, record_id: int | None = None) -> Record | None:
        """Return the newest record, or the record with ``record_id``."""
        try:
            if record_id is None:
                info = await self._js.stream_info(self.stream)
                if info.state.messages == 0:
                    return None
                record_id = info.state.last_seq
            msg = await self._js.get_msg(self.stream, seq=record_id)
        except NotFoundError:
            return None
        except Exception as e:
            raise StoreError(
                f"Failed to query '{self._name}': {e}",
                collection=self._name,
                operation="find_latest",
            ) from e

        return decode_record(msg.seq, msg.data)

    def tail(self, after_id: int, retry_interval: float) -> TailCursor:
        """Open a tailing cursor yielding records with ``id > after_id``."""
        return NATSTailCursor(self, after_id, retry_interval)


class NATSBoundedStore(BoundedStorePort):
    """NATS JetStream implementation of the bounded store port."""

    def __init__(
        self,
        config: NATSStoreConfig | None = None,
        metrics: MetricsPort | None = None,
        logger: LoggerPort | None = None,
    ):
        """Initialize the store adapter.

        Args:
            config: Store configuration. If not provided, uses defaults.
            metrics: Optional metrics port. If not provided, uses default adapter.
            logger: Optional logger port. If not provided, uses simple logger.
        """
        self._config = config or NATSStoreConfig()
        self._metrics = metrics or InMemoryMetrics()
        self._logger = logger or SimpleLogger("tailbus.nats_store")
        self._nc: NATSClient | None = None
        self._js: JetStreamContext | None = None

    async def connect(self, servers: list[str] | None = None) -> None:
        """Connect to NATS and initialize JetStream.

        Args:
            servers: Optional override for server URLs. If not provided, uses config.
        """
        conn_params = self._config.to_connection_params()
        if servers:
            conn_params["servers"] = servers

        self._nc = await nats.connect(**conn_params)

        js_domain = self._config.js_domain or os.getenv("NATS_JS_DOMAIN")
        if js_domain:
            self._js = self._nc.jetstream(domain=js_domain)
        else:
            self._js = self._nc.jetstream()

        self._metrics.gauge("nats.connections", 1)
        log_ctx = LogContext(operation="connect", component="NATSBoundedStore")
        self._logger.info(
            f"Connected to NATS at {conn_params['servers']}", **log_ctx.to_dict()
        )

    async def disconnect(self) -> None:
        """Disconnect from NATS; open cursors end."""
        if self._nc is not None and not self._nc.is_closed:
            await self._nc.close()
        self._nc = None
        self._js = None
        self._metrics.gauge("nats.connections", 0)

    async def is_connected(self) -> bool:
        """Check if connected to NATS."""
        return self._nc is not None and self._nc.is_connected

    def _stream_config(self, name: str, capacity_bytes: int, max_count: int | None):
        return api.StreamConfig(
            name=StreamPatterns.stream(self._config.stream_prefix, name),
            subjects=[StreamPatterns.subject(self._config.subject_prefix, name)],
            retention=api.RetentionPolicy.LIMITS,
            max_bytes=capacity_bytes,
            max_msgs=max_count if max_count is not None else -1,
            discard=api.DiscardPolicy.OLD,
            storage=api.StorageType(self._config.storage.value),
            num_replicas=self._config.num_replicas,
        )

    async def create_bounded_collection(
        self, name: str, capacity_bytes: int, max_count: int | None = None
    ) -> CollectionHandle:
        """Create the stream for a collection if absent and return a handle."""
        if self._nc is None or self._js is None:
            raise StoreError("Not connected to NATS", collection=name, operation="create")
        if not StreamPatterns.is_valid_collection_name(name):
            raise StoreError(
                f"Invalid collection name '{name}'. "
                "Use only letters, numbers, hyphens and underscores",
                collection=name,
                operation="create",
            )

        log_ctx = LogContext(collection=name, operation="create", component="NATSBoundedStore")
        stream_config = self._stream_config(name, capacity_bytes, max_count)

        try:
            # Adding a stream with an identical config is idempotent
            info = await self._js.add_stream(config=stream_config)
        except BadRequestError as e:
            if e.err_code != STREAM_NAME_IN_USE:
                raise StoreError(
                    f"Failed to create collection '{name}': {e}",
                    collection=name,
                    operation="create",
                ) from e
            try:
                info = await self._js.stream_info(stream_config.name)
            except NotFoundError:
                # Deleted between the two calls; let the caller retry
                raise CollectionAlreadyExistsError(name) from e
            self._logger.warning(
                "Collection exists with a different configuration, using it as is",
                **log_ctx.to_dict(),
            )
        except Exception as e:
            self._metrics.increment("store.create.error")
            raise StoreError(
                f"Failed to create collection '{name}': {e}",
                collection=name,
                operation="create",
            ) from e

        self._metrics.increment("store.create.success")
        return NATSCollection(
            self._nc,
            self._js,
            name,
            self._config,
            self._logger,
            self._metrics,
            generation=info.created,
        )
