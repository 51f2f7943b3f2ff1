"""Serialization utilities for record bodies in JSON and MessagePack."""

import json
from typing import Any

import msgpack

from ..domain.exceptions import SerializationError
from ..domain.models import Record


def encode_body(
    event: str | None,
    payload: Any,
    bootstrap_marker: bool = False,
    use_msgpack: bool = True,
) -> bytes:
    """Serialize the stored fields of a record (everything but its id)."""
    body = {"event": event, "payload": payload, "bootstrap_marker": bootstrap_marker}
    try:
        if use_msgpack:
            # default=str handles datetime and other non-serializable objects
            return bytes(msgpack.packb(body, use_bin_type=True, default=str))
        return json.dumps(body, default=str).encode()
    except Exception as e:
        raise SerializationError(f"Failed to serialize record body: {e}") from e


def is_msgpack(data: bytes) -> bool:
    """Check if data looks like MessagePack format.

    Record bodies are always maps, so JSON starts with ``{`` while msgpack
    starts with a fixmap (0x80-0x8f) or map16/map32 (0xde/0xdf) marker.
    """
    if not data:
        return False
    first_byte = data[0]
    return 0x80 <= first_byte <= 0x8F or first_byte in (0xDE, 0xDF)


def decode_body(data: bytes) -> dict[str, Any]:
    """Deserialize a record body, detecting its format."""
    if not data:
        raise SerializationError("Empty record body")
    try:
        if is_msgpack(data):
            # Payload maps may use non-string keys
            body = msgpack.unpackb(data, raw=False, strict_map_key=False)
        else:
            body = json.loads(data.decode())
    except Exception as e:
        raise SerializationError(f"Failed to deserialize record body: {e}") from e
    if not isinstance(body, dict):
        raise SerializationError(f"Record body must be a map, got {type(body).__name__}")
    return body


def decode_record(record_id: int, data: bytes) -> Record:
    """Build a Record from its store-assigned id and serialized body."""
    body = decode_body(data)
    return Record(
        id=record_id,
        event=body.get("event") or None,
        payload=body.get("payload"),
        bootstrap_marker=bool(body.get("bootstrap_marker", False)),
    )


def body_size(event: str | None, payload: Any, bootstrap_marker: bool = False) -> int:
    """Return the serialized size of a record body in bytes."""
    return len(encode_body(event, payload, bootstrap_marker, use_msgpack=True))
