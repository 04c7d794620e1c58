"""Protocol data that travels between the frame header and the body."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass


class ProtocolError(ValueError):
    """Raised when protocol data cannot be decoded."""


@dataclass
class ProtocolData:
    """Routing information of a call."""

    service_name: str = ""
    method_name: str = ""

    def serialize(self) -> bytes:
        """Encode as compact JSON."""
        return json.dumps(asdict(self), separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def deserialize_protocol_data(data: bytes) -> ProtocolData:
    """Decode JSON protocol data; unknown fields are ignored."""
    if not data:
        raise ProtocolError("empty protocol data")
    try:
        decoded = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ProtocolError(f"failed to deserialize protocol data: {exc}") from exc
    if decoded is None:
        return ProtocolData()
    if not isinstance(decoded, dict):
        raise ProtocolError("failed to deserialize protocol data: not a JSON object")
    values = {}
    for name in ("service_name", "method_name"):
        value = decoded.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ProtocolError(f"failed to deserialize protocol data: {name} is not a string")
        values[name] = value
    return ProtocolData(**values)