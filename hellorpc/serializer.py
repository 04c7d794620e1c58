"""Body serialisation for protobuf-style messages."""

from __future__ import annotations

from typing import Any


class SerializationError(Exception):
    """Raised when a body cannot be serialised or parsed."""


def marshal(body: Any) -> bytes:
    """Serialise a message that provides ``SerializeToString``."""
    serialize = getattr(body, "SerializeToString", None)
    if not callable(serialize):
        raise SerializationError("marshal: body does not implement a protobuf message")
    try:
        return bytes(serialize())
    except Exception as exc:
        raise SerializationError(f"marshal: {exc}") from exc


def unmarshal(data: bytes, body: Any) -> None:
    """Fill a message that provides ``ParseFromString`` from bytes."""
    parse = getattr(body, "ParseFromString", None)
    if not callable(parse):
        raise SerializationError("unmarshal: body does not implement a protobuf message")
    try:
        parse(bytes(data))
    except Exception as exc:
        raise SerializationError(f"unmarshal: {exc}") from exc