"""Frame encoding and decoding for the wire protocol."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Mapping, Protocol

from hellorpc.message import Message, get_message
from hellorpc.protocol import ProtocolData, ProtocolError, deserialize_protocol_data

MAGIC_NUMBER = 0x1234
VERSION = 1
HEADER_LENGTH = 16

_HEADER = struct.Struct(">HBBIII")


class MessageType(IntEnum):
    REQUEST = 1
    RESPONSE = 2


class CodecError(Exception):
    """Raised for malformed or unreadable frames."""


@dataclass
class FrameHeader:
    """The fixed 16-byte header that starts every frame."""

    magic_number: int = MAGIC_NUMBER
    version: int = VERSION
    message_type: int = MessageType.REQUEST
    sequence_id: int = 0
    protocol_length: int = 0
    body_length: int = 0

    def pack(self) -> bytes:
        """Encode the header big-endian."""
        return _HEADER.pack(
            self.magic_number,
            self.version,
            self.message_type,
            self.sequence_id,
            self.protocol_length,
            self.body_length,
        )


def parse_header(data: bytes) -> FrameHeader:
    """Decode and validate the header at the start of ``data``."""
    if len(data) < HEADER_LENGTH:
        raise CodecError(f"frame too short: {len(data)} bytes")
    header = FrameHeader(*_HEADER.unpack_from(data))
    if header.magic_number != MAGIC_NUMBER:
        raise CodecError(f"invalid magic number: {header.magic_number}")
    if header.version != VERSION:
        raise CodecError(f"unsupported version: {header.version}")
    return header


class Codec(Protocol):
    def encode(self, ctx: Mapping[str, Any] | None, data: bytes) -> bytes: ...

    def decode(self, msg: Message, frame: bytes) -> bytes: ...


def _encode_frame(ctx: Mapping[str, Any] | None, data: bytes) -> bytes:
    _, msg = get_message(ctx)
    protocol = ProtocolData(service_name=msg.service_name, method_name=msg.method_name).serialize()
    header = FrameHeader(
        message_type=MessageType.REQUEST,
        sequence_id=1,
        protocol_length=len(protocol),
        body_length=len(data),
    )
    return header.pack() + protocol + bytes(data)


class ClientCodec:
    """Codec used on the calling side."""

    def encode(self, ctx: Mapping[str, Any] | None, data: bytes) -> bytes:
        """Wrap a body in a frame carrying the context's service and method names."""
        return _encode_frame(ctx, data)

    def decode(self, msg: Message, frame: bytes) -> bytes:
        """Validate a frame and return its body."""
        header = parse_header(frame)
        return bytes(frame[HEADER_LENGTH + header.protocol_length:])


class ServerCodec:
    """Codec used on the serving side; decoding fills in the routing names."""

    def encode(self, ctx: Mapping[str, Any] | None, data: bytes) -> bytes:
        """Wrap a body in a frame carrying the context's service and method names."""
        return _encode_frame(ctx, data)

    def decode(self, msg: Message, frame: bytes) -> bytes:
        """Validate a frame, copy its routing names into ``msg`` and return its body."""
        header = parse_header(frame)
        end = HEADER_LENGTH + header.protocol_length
        if len(frame) < end:
            raise CodecError("frame shorter than its protocol data")
        try:
            protocol = deserialize_protocol_data(bytes(frame[HEADER_LENGTH:end]))
        except ProtocolError as exc:
            raise CodecError(f"parse protocol data error: {exc}") from exc
        msg.service_name = protocol.service_name
        msg.method_name = protocol.method_name
        return bytes(frame[end:])


DEFAULT_CLIENT_CODEC = ClientCodec()
DEFAULT_SERVER_CODEC = ServerCodec()


def _read_exact(reader: Any, size: int) -> bytes:
    read = getattr(reader, "recv", None) or reader.read
    buffer = bytearray()
    while len(buffer) < size:
        chunk = read(size - len(buffer))
        if not chunk:
            break
        buffer += chunk
    return bytes(buffer)


def _eof_text(got: int) -> str:
    return "EOF" if got == 0 else "unexpected EOF"


def read_frame(reader: Any) -> bytes:
    """Read one whole frame from a socket or binary stream."""
    header_bytes = _read_exact(reader, HEADER_LENGTH)
    if len(header_bytes) < HEADER_LENGTH:
        got = len(header_bytes)
        raise CodecError(f"read header error: {_eof_text(got)}, read {got} bytes")
    header = parse_header(header_bytes)
    size = header.protocol_length + header.body_length
    rest = _read_exact(reader, size)
    if len(rest) < size:
        raise CodecError(f"read body error: {_eof_text(len(rest))}")
    return header_bytes + rest