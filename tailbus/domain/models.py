"""Domain models using Pydantic for validation."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Built-in notification names dispatched by every channel
MESSAGE_EVENT = "message"
DOCUMENT_EVENT = "document"
ERROR_EVENT = "error"
READY_EVENT = "ready"

RESERVED_EVENTS = frozenset({MESSAGE_EVENT, DOCUMENT_EVENT, ERROR_EVENT, READY_EVENT})

DEFAULT_CHANNEL_NAME = "tailbus"


class Record(BaseModel):
    """A record stored in a bounded collection.

    Records are immutable once inserted. The ``id`` is assigned by the store
    and grows strictly in insertion order, so it doubles as a resume cursor.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "id": 42,
                "event": "order.created",
                "payload": {"order_id": "A-1001"},
                "bootstrap_marker": False,
            }
        },
    )

    id: int = Field(..., ge=0, description="Store-assigned, insertion-ordered id")
    event: str | None = Field(default=None, description="Event name, empty for markers")
    payload: Any = Field(default=None, description="Opaque application value")
    bootstrap_marker: bool = Field(
        default=False, description="Synthetic record seeded into an empty collection"
    )

    def is_message(self) -> bool:
        """Check if the record carries an event that subscribers should see."""
        return bool(self.event) and not self.bootstrap_marker
