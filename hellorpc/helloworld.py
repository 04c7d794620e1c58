"""The greeting service: its messages, server binding and client proxy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable

from hellorpc.client import DEFAULT_CLIENT, Client, Option
from hellorpc.message import CONTEXT_MSG_KEY, Message
from hellorpc.serializer import SerializationError, unmarshal
from hellorpc.server import MethodDesc, Server, ServerError, ServiceDesc

SERVICE_NAME = "helloworld"
METHOD_HELLO = "Hello"

_WIRE_VARINT = 0
_WIRE_FIXED64 = 1
_WIRE_LENGTH = 2
_WIRE_FIXED32 = 5


def _encode_varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    for shift in range(0, 70, 7):
        if pos >= len(data):
            raise ValueError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
    raise ValueError("varint too long")


def _take(data: bytes, pos: int, size: int) -> tuple[bytes, int]:
    end = pos + size
    if end > len(data):
        raise ValueError("truncated field")
    return data[pos:end], end


def _encode_string_field(number: int, value: str) -> bytes:
    if not value:
        return b""
    raw = value.encode("utf-8")
    return _encode_varint(number << 3 | _WIRE_LENGTH) + _encode_varint(len(raw)) + raw


def _parse_string_fields(data: bytes) -> dict[int, str]:
    """Collect length-delimited string fields, skipping everything else."""
    data = bytes(data)
    fields: dict[int, str] = {}
    pos = 0
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        number, wire = key >> 3, key & 7
        if number == 0:
            raise ValueError("invalid field number 0")
        if wire == _WIRE_VARINT:
            _, pos = _read_varint(data, pos)
        elif wire == _WIRE_FIXED64:
            _, pos = _take(data, pos, 8)
        elif wire == _WIRE_FIXED32:
            _, pos = _take(data, pos, 4)
        elif wire == _WIRE_LENGTH:
            size, pos = _read_varint(data, pos)
            chunk, pos = _take(data, pos, size)
            try:
                fields[number] = chunk.decode("utf-8")
            except UnicodeDecodeError:
                if number == 1:
                    raise ValueError("string field contains invalid UTF-8") from None
        else:
            raise ValueError(f"unsupported wire type {wire}")
    return fields


@dataclass
class HelloRequest:
    """The greeting request."""

    msg: str = ""

    def SerializeToString(self) -> bytes:
        """Encode in protobuf wire format (``string msg = 1``)."""
        return _encode_string_field(1, self.msg)

    def ParseFromString(self, data: bytes) -> None:
        """Replace the contents with those decoded from ``data``."""
        self.msg = _parse_string_fields(data).get(1, "")


@dataclass
class HelloReply:
    """The greeting reply."""

    msg: str = ""

    def SerializeToString(self) -> bytes:
        """Encode in protobuf wire format (``string msg = 1``)."""
        return _encode_string_field(1, self.msg)

    def ParseFromString(self, data: bytes) -> None:
        """Replace the contents with those decoded from ``data``."""
        self.msg = _parse_string_fields(data).get(1, "")


@runtime_checkable
class HelloServer(Protocol):
    """What an implementation of the greeting service provides."""

    def hello(self, req: HelloRequest) -> HelloReply: ...


def hello_handler(srv: Any, req: bytes) -> HelloReply:
    """Decode a request and pass it to ``srv.hello``."""
    if not isinstance(srv, HelloServer):
        raise TypeError("hello handler: type assertion failed")
    body = HelloRequest()
    try:
        unmarshal(req, body)
    except SerializationError as exc:
        raise SerializationError(f"hello handler: {exc}") from exc
    return srv.hello(body)


HELLO_SERVICE_DESC = ServiceDesc(
    service_name=SERVICE_NAME,
    methods=[MethodDesc(method_name=METHOD_HELLO, func=hello_handler)],
    handler_type=HelloServer,
)


def register_hello_server(server: Server, impl: Any) -> None:
    """Register ``impl`` as the greeting service on every service of ``server``."""
    try:
        server.register(HELLO_SERVICE_DESC, impl)
    except ServerError as exc:
        raise ServerError(f"Greeter register error: {exc}") from exc


class HelloClientProxy:
    """Calls the greeting service through a client."""

    def __init__(self, *args: Option, client: Client | None = None) -> None:
        self.client = client if client is not None else DEFAULT_CLIENT
        self.options: tuple[Option, ...] = args

    def hello(self, ctx: Mapping[str, Any] | None, req: HelloRequest,
              *args: Option) -> HelloReply:
        """Send ``req`` and return the reply."""
        msg = Message(service_name=SERVICE_NAME, method_name=METHOD_HELLO)
        call_ctx = {**(ctx or {}), CONTEXT_MSG_KEY: msg}
        rsp = HelloReply()
        self.client.invoke(call_ctx, req, rsp, *self.options, *args)
        return rsp