import io
import socket

import pytest

from hellorpc.codec import (
    HEADER_LENGTH,
    MAGIC_NUMBER,
    VERSION,
    ClientCodec,
    CodecError,
    FrameHeader,
    MessageType,
    ServerCodec,
    parse_header,
    read_frame,
)
from hellorpc.message import CONTEXT_MSG_KEY, Message
from hellorpc.protocol import ProtocolData


def _ctx():
    return {CONTEXT_MSG_KEY: Message(service_name="helloworld", method_name="Hello")}


def test_header_packs_to_sixteen_bytes_big_endian():
    packed = FrameHeader(sequence_id=1).pack()
    assert len(packed) == HEADER_LENGTH
    assert packed[:4] == b"\x12\x34\x01\x01"


def test_header_round_trip():
    header = FrameHeader(sequence_id=7, protocol_length=3, body_length=9)
    assert parse_header(header.pack()) == header


def test_parse_header_rejects_bad_magic():
    with pytest.raises(CodecError, match="invalid magic number: 0"):
        parse_header(FrameHeader(magic_number=0).pack())


def test_parse_header_rejects_bad_version():
    with pytest.raises(CodecError, match="unsupported version: 2"):
        parse_header(FrameHeader(version=2).pack())


def test_parse_header_rejects_short_data():
    with pytest.raises(CodecError):
        parse_header(b"\x12\x34")


def test_encode_layout():
    frame = ClientCodec().encode(_ctx(), b"payload")
    protocol = ProtocolData(service_name="helloworld", method_name="Hello").serialize()
    header = parse_header(frame)
    assert header.magic_number == MAGIC_NUMBER
    assert header.version == VERSION
    assert header.message_type == MessageType.REQUEST
    assert header.sequence_id == 1
    assert header.protocol_length == len(protocol)
    assert header.body_length == len(b"payload")
    assert frame[HEADER_LENGTH:HEADER_LENGTH + len(protocol)] == protocol
    assert frame.endswith(b"payload")


def test_server_decode_fills_message():
    frame = ClientCodec().encode(_ctx(), b"payload")
    msg = Message()
    assert ServerCodec().decode(msg, frame) == b"payload"
    assert msg == Message(service_name="helloworld", method_name="Hello")


def test_client_decode_returns_body_and_keeps_message():
    frame = ServerCodec().encode(_ctx(), b"reply")
    msg = Message()
    assert ClientCodec().decode(msg, frame) == b"reply"
    assert msg == Message()


def test_encode_without_message_uses_empty_names():
    frame = ClientCodec().encode({}, b"x")
    msg = Message(service_name="old", method_name="old")
    ServerCodec().decode(msg, frame)
    assert msg == Message()


def test_server_decode_rejects_empty_protocol_data():
    frame = FrameHeader(protocol_length=0, body_length=1).pack() + b"x"
    with pytest.raises(CodecError, match="parse protocol data error"):
        ServerCodec().decode(Message(), frame)


def test_decode_rejects_bad_magic():
    frame = bytearray(ClientCodec().encode(_ctx(), b"x"))
    frame[0:2] = b"\x00\x00"
    with pytest.raises(CodecError, match="invalid magic number"):
        ClientCodec().decode(Message(), bytes(frame))


def test_read_frame_from_stream_ignores_trailing_bytes():
    frame = ClientCodec().encode(_ctx(), b"payload")
    assert read_frame(io.BytesIO(frame + b"extra")) == frame


def test_read_frame_from_socket():
    frame = ClientCodec().encode(_ctx(), b"payload")
    left, right = socket.socketpair()
    with left, right:
        left.sendall(frame)
        assert read_frame(right) == frame


def test_read_frame_empty_stream():
    with pytest.raises(CodecError, match="read header error: EOF, read 0 bytes"):
        read_frame(io.BytesIO(b""))


def test_read_frame_short_header():
    with pytest.raises(CodecError, match="unexpected EOF, read 2 bytes"):
        read_frame(io.BytesIO(b"\x12\x34"))


def test_read_frame_short_body():
    frame = ClientCodec().encode(_ctx(), b"payload")
    with pytest.raises(CodecError, match="read body error"):
        read_frame(io.BytesIO(frame[:-1]))


def test_read_frame_bad_version():
    with pytest.raises(CodecError, match="unsupported version"):
        read_frame(io.BytesIO(FrameHeader(version=9).pack()))