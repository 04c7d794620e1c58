import threading

import pytest

from hellorpc.client import (
    Client,
    ClientError,
    Options,
    with_codec,
    with_target,
)
from hellorpc.codec import (
    DEFAULT_CLIENT_CODEC,
    ClientCodec,
    ServerCodec,
)
from hellorpc.message import CONTEXT_MSG_KEY, Message
from hellorpc.transport import DEFAULT_CLIENT_TRANSPORT, ServerTransport


class Text:
    def __init__(self, value=""):
        self.value = value

    def SerializeToString(self):
        return self.value.encode("utf-8")

    def ParseFromString(self, data):
        self.value = data.decode("utf-8")


class RecordingTransport:
    def __init__(self):
        self.calls = []

    def send(self, ctx, req_body, rsp_body, opt):
        self.calls.append((ctx, req_body, rsp_body, opt))
        rsp_body.value = "reply to " + req_body.value


class FailingTransport:
    def send(self, ctx, req_body, rsp_body, opt):
        raise ConnectionRefusedError("refused")


def use_transport(transport):
    def apply(options):
        options.client_transport = transport

    return apply


class UpperHandler:
    def handle(self, ctx, frame):
        msg = Message()
        codec = ServerCodec()
        body = codec.decode(msg, frame)
        return codec.encode({CONTEXT_MSG_KEY: msg}, body.upper())


@pytest.fixture
def upper_server():
    transport = ServerTransport(accept_interval=0.05)
    transport.register_handler(UpperHandler())
    thread = threading.Thread(
        target=transport.listen_and_serve, args=("tcp", "127.0.0.1:0"), daemon=True
    )
    thread.start()
    host, port = transport.wait_until_listening(5)
    yield f"{host}:{port}"
    transport.shutdown()
    thread.join(5)


def test_options_defaults():
    options = Options()
    assert options.target == ""
    assert options.codec is DEFAULT_CLIENT_CODEC
    assert options.client_transport is DEFAULT_CLIENT_TRANSPORT
    assert options.client_transport_option.codec is DEFAULT_CLIENT_CODEC
    assert options.client_transport_option.address == ""


def test_with_target_sets_both_addresses():
    options = Options()
    with_target("127.0.0.1:8000")(options)
    assert options.target == "127.0.0.1:8000"
    assert options.client_transport_option.address == "127.0.0.1:8000"


def test_with_codec_sets_both_codecs():
    codec = ClientCodec()
    options = Options()
    with_codec(codec)(options)
    assert options.codec is codec
    assert options.client_transport_option.codec is codec


def test_invoke_passes_options_to_transport():
    transport = RecordingTransport()
    ctx = {CONTEXT_MSG_KEY: Message("helloworld", "Hello")}
    request, reply = Text("world"), Text()
    Client().invoke(ctx, request, reply, use_transport(transport), with_target("a:1"))
    assert len(transport.calls) == 1
    sent_ctx, sent_req, sent_rsp, opt = transport.calls[0]
    assert sent_ctx is ctx
    assert sent_req is request
    assert sent_rsp is reply
    assert opt.address == "a:1"
    assert reply.value == "reply to world"


def test_later_options_win():
    transport = RecordingTransport()
    Client().invoke(
        None, Text("x"), Text(), use_transport(transport), with_target("a:1"), with_target("b:2")
    )
    assert transport.calls[0][3].address == "b:2"


def test_invoke_without_transport_raises():
    with pytest.raises(ClientError):
        Client().invoke(None, Text("x"), Text(), use_transport(None))


def test_invoke_propagates_transport_error():
    with pytest.raises(ConnectionRefusedError):
        Client().invoke(None, Text("x"), Text(), use_transport(FailingTransport()))


def test_invoke_over_tcp(upper_server):
    ctx = {CONTEXT_MSG_KEY: Message("helloworld", "Hello")}
    reply = Text()
    Client().invoke(ctx, Text("world"), reply, with_target(upper_server))
    assert reply.value == "WORLD"