"""Domain-specific exceptions for channels and bounded stores."""


class TailbusError(Exception):
    """Base exception for all tailbus errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreError(TailbusError):
    """Bounded store operation errors (insert, query, tail)."""

    def __init__(
        self,
        message: str,
        collection: str | None = None,
        operation: str | None = None,
    ):
        super().__init__(message)
        self.collection = collection
        self.operation = operation
        if collection:
            self.details["collection"] = collection
        if operation:
            self.details["operation"] = operation


class CollectionAlreadyExistsError(StoreError):
    """Raised when a concurrent creator won the race for a collection.

    Channels treat this as retryable and never surface it.
    """

    def __init__(self, collection: str):
        super().__init__(
            f"Collection '{collection}' already exists",
            collection=collection,
            operation="create",
        )


class SerializationError(StoreError):
    """Record body serialization/deserialization errors."""

    pass


class ChannelError(TailbusError):
    """Base exception for errors reported by a channel."""

    def __init__(self, message: str, channel: str | None = None):
        super().__init__(message)
        self.channel = channel
        if channel:
            self.details["channel"] = channel


class ProvisioningError(ChannelError):
    """Raised when the channel's collection cannot be created."""

    pass


class BrokenCursorError(ChannelError):
    """Raised when a tailing cursor ends without an error.

    This happens when the collection was dropped or the store connection
    was lost underneath the cursor.
    """

    def __init__(self, channel: str, last_seen_id: int | None = None):
        super().__init__(f"Broken cursor on channel '{channel}'", channel=channel)
        self.last_seen_id = last_seen_id
        if last_seen_id is not None:
            self.details["last_seen_id"] = last_seen_id


class SubscriberError(ChannelError):
    """Raised when a subscriber callback fails during dispatch."""

    def __init__(self, event: str, error: Exception, channel: str | None = None):
        super().__init__(f"Subscriber for '{event}' failed: {error}", channel=channel)
        self.event = event
        self.error = error
        self.details["event"] = event
