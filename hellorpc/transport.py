"""TCP transports for calling and serving."""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from hellorpc.codec import Codec, ClientCodec, CodecError, read_frame
from hellorpc.message import get_message
from hellorpc.serializer import marshal, unmarshal

logger = logging.getLogger(__name__)


class Handler(Protocol):
    """Something that turns a request frame into a response frame."""

    def handle(self, ctx: Mapping[str, Any], frame: bytes) -> bytes: ...


def _split_host_port(address: str) -> tuple[str, int]:
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or not rest.startswith(":"):
            raise ValueError(f"invalid address: {address!r}")
        port_text = rest[1:]
    else:
        host, sep, port_text = address.rpartition(":")
        if not sep:
            raise ValueError(f"missing port in address: {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in address: {address!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"invalid port in address: {address!r}")
    return host, port


@dataclass
class ClientTransportOption:
    """Where to send a call and how to frame it."""

    address: str = ""
    codec: Codec = field(default_factory=ClientCodec)


class ClientTransport:
    """Sends one request per TCP connection and reads the reply."""

    def send(self, ctx: Mapping[str, Any] | None, req_body: Any, rsp_body: Any,
             opt: ClientTransportOption) -> None:
        """Send ``req_body`` and fill ``rsp_body`` from the reply."""
        host, port = _split_host_port(opt.address)
        with socket.create_connection((host or "localhost", port)) as conn:
            req_data = marshal(req_body)
            frame = opt.codec.encode(ctx, req_data)
            conn.sendall(frame)
            rsp_frame = read_frame(conn)
        _, msg = get_message(ctx)
        rsp_data = opt.codec.decode(msg, rsp_frame)
        unmarshal(rsp_data, rsp_body)


def _listen_family(network: str, host: str) -> socket.AddressFamily:
    if network == "tcp4":
        return socket.AF_INET
    if network == "tcp6":
        return socket.AF_INET6
    if network == "tcp":
        return socket.AF_INET6 if ":" in host else socket.AF_INET
    raise ValueError(f"unsupported network: {network!r}")


class ServerTransport:
    """Accepts TCP connections and answers one frame on each."""

    def __init__(self, accept_interval: float = 0.1) -> None:
        self._handler: Handler | None = None
        self._listener: socket.socket | None = None
        self._address: tuple[str, int] | None = None
        self._closed = threading.Event()
        self._ready = threading.Event()
        self._accept_interval = accept_interval

    def register_handler(self, handler: Handler) -> None:
        """Set the handler that answers incoming frames."""
        self._handler = handler

    @property
    def server_address(self) -> tuple[str, int] | None:
        """The bound ``(host, port)``, once listening."""
        return self._address

    def wait_until_listening(self, timeout: float | None = None) -> tuple[str, int]:
        """Block until the listener is bound and return its address."""
        if not self._ready.wait(timeout):
            raise TimeoutError("server transport is not listening")
        assert self._address is not None
        return self._address

    def listen_and_serve(self, network: str, address: str) -> None:
        """Listen on ``address`` and serve until :meth:`shutdown` is called."""
        host, port = _split_host_port(address)
        family = _listen_family(network, host)
        with socket.create_server((host, port), family=family) as listener:
            listener.settimeout(self._accept_interval)
            self._listener = listener
            self._address = tuple(listener.getsockname()[:2])
            self._ready.set()
            logger.info("listening on %s:%s", *self._address)
            while not self._closed.is_set():
                try:
                    conn, peer = listener.accept()
                except socket.timeout:
                    continue
                except OSError as exc:
                    if self._closed.is_set():
                        break
                    logger.warning("accept error: %s", exc)
                    continue
                threading.Thread(
                    target=self._handle_connection, args=(conn, peer), daemon=True
                ).start()
        self._listener = None

    def shutdown(self) -> None:
        """Stop accepting connections; listen_and_serve then returns."""
        self._closed.set()

    def _handle_connection(self, conn: socket.socket, peer: Any) -> None:
        with conn:
            logger.info("new connection from %s", peer)
            try:
                frame = read_frame(conn)
            except (CodecError, OSError) as exc:
                logger.warning("read frame error: %s", exc)
                return
            handler = self._handler
            if handler is None:
                logger.warning("no handler registered")
                return
            try:
                response = handler.handle({}, frame)
            except Exception as exc:
                logger.warning("handle error: %s", exc)
                return
            try:
                conn.sendall(response)
            except OSError as exc:
                logger.warning("write error: %s", exc)


DEFAULT_CLIENT_TRANSPORT = ClientTransport()
DEFAULT_SERVER_TRANSPORT = ServerTransport()