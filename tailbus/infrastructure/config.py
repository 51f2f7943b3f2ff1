"""Configuration objects for channels and store adapters."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.enums import StorageType

DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024  # 5MB


class ChannelOptions(BaseModel):
    """Strongly-typed options for a channel and its bounded collection.

    ``retry_interval_ms`` is how long a tailing read waits before polling an
    empty collection again. ``recreate_delay_ms`` is the fixed pause after a
    broken cursor before the channel recreates it. The two are independent.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        strict=True,
        validate_assignment=True,
    )

    capacity_bytes: int = Field(
        default=DEFAULT_CAPACITY_BYTES,
        gt=0,
        description="Maximum size of the collection in bytes",
    )
    max_count: int | None = Field(
        default=None,
        gt=0,
        description="Maximum number of records in the collection",
    )
    retry_interval_ms: int = Field(
        default=200,
        ge=1,
        le=60000,
        description="Poll interval of the tailing read when no record is available",
    )
    recreate: bool = Field(
        default=True,
        description="Recreate the tailing cursor after it breaks",
    )
    recreate_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Delay before recreating a broken cursor",
    )

    @property
    def retry_interval(self) -> float:
        """Retry interval in seconds."""
        return self.retry_interval_ms / 1000

    @property
    def recreate_delay(self) -> float:
        """Recreate delay in seconds."""
        return self.recreate_delay_ms / 1000


class NATSStoreConfig(BaseModel):
    """Strongly-typed configuration for the NATS JetStream bounded store.

    Each collection maps to one stream named ``<stream_prefix>_<collection>``
    whose records are published on ``<subject_prefix>.<collection>``.
    """

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
        strict=True,
        validate_assignment=True,
    )

    # Connection settings
    servers: list[str] = Field(
        default_factory=lambda: ["nats://localhost:4222"],
        min_length=1,
        description="List of NATS server URLs",
    )
    max_reconnect_attempts: int = Field(
        default=10,
        ge=0,
        description="Maximum reconnection attempts",
    )
    reconnect_time_wait: float = Field(
        default=2.0,
        gt=0,
        description="Time to wait between reconnection attempts in seconds",
    )

    # JetStream settings
    js_domain: str | None = Field(
        default=None,
        description="JetStream domain for multi-tenancy",
    )
    stream_prefix: str = Field(
        default="TAILBUS",
        min_length=1,
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Prefix of the stream backing each collection",
    )
    subject_prefix: str = Field(
        default="tailbus",
        min_length=1,
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Prefix of the subject records are published on",
    )
    storage: StorageType = Field(
        default=StorageType.FILE,
        description="Stream storage backend",
    )
    num_replicas: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Stream replica count",
    )
    publish_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a publish acknowledgment",
    )

    # Serialization settings
    use_msgpack: bool = Field(
        default=True,
        description="Use MessagePack for record bodies (faster than JSON)",
    )

    @field_validator("servers")
    @classmethod
    def validate_servers(cls, v: list[str]) -> list[str]:
        """Validate server URLs format."""
        for server in v:
            if not server.startswith(("nats://", "tls://", "ws://", "wss://")):
                raise ValueError(
                    f"Invalid server URL: {server}. "
                    "Must start with nats://, tls://, ws://, or wss://"
                )
        return v

    def to_connection_params(self) -> dict[str, Any]:
        """Convert to parameters for NATS connection."""
        return {
            "servers": self.servers,
            "max_reconnect_attempts": self.max_reconnect_attempts,
            "reconnect_time_wait": self.reconnect_time_wait,
        }


class LogContext(BaseModel):
    """Strongly-typed context for structured logging.

    Provides a consistent set of fields for channel and store logs.
    """

    model_config = ConfigDict(
        extra="allow",
        str_strip_whitespace=True,
        strict=False,
        validate_assignment=True,
    )

    channel: str | None = Field(default=None, description="Channel name")
    collection: str | None = Field(default=None, description="Collection name")
    operation: str | None = Field(default=None, description="Current operation")
    component: str | None = Field(default=None, description="Component generating the log")
    last_seen_id: int | None = Field(default=None, description="Resume point of the channel")

    # Error context
    error_code: str | None = Field(default=None, description="Structured error code")
    error_type: str | None = Field(default=None, description="Type of error encountered")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging frameworks."""
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def with_error(self, error: Exception) -> LogContext:
        """Create a new context with error information."""
        return LogContext(
            **{
                **self.model_dump(),
                "error_code": error.__class__.__name__,
                "error_type": type(error).__module__ + "." + type(error).__name__,
            }
        )

    def with_operation(self, operation: str, component: str | None = None) -> LogContext:
        """Create a new context with operation information."""
        return LogContext(
            **{
                **self.model_dump(),
                "operation": operation,
                "component": component or self.component,
            }
        )
