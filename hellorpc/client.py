"""Client side of a call: per-call options and the invoker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from hellorpc.codec import DEFAULT_CLIENT_CODEC, Codec
from hellorpc.transport import (
    DEFAULT_CLIENT_TRANSPORT,
    ClientTransport,
    ClientTransportOption,
)


class ClientError(Exception):
    """Raised when a call cannot be made."""


@dataclass
class Options:
    """Settings for one call; they live until the request has been sent."""

    target: str = ""
    client_transport_option: ClientTransportOption = field(
        default_factory=lambda: ClientTransportOption(codec=DEFAULT_CLIENT_CODEC)
    )
    client_transport: ClientTransport | None = field(
        default_factory=lambda: DEFAULT_CLIENT_TRANSPORT
    )
    codec: Codec = field(default_factory=lambda: DEFAULT_CLIENT_CODEC)


Option = Callable[[Options], None]


def with_target(target: str) -> Option:
    """Send the call to ``target`` (``host:port``)."""

    def apply(options: Options) -> None:
        options.target = target
        options.client_transport_option.address = target

    return apply


def with_codec(codec: Codec) -> Option:
    """Frame the call with ``codec``."""

    def apply(options: Options) -> None:
        options.codec = codec
        options.client_transport_option.codec = codec

    return apply


class Client:
    """Performs unary calls through a client transport."""

    def invoke(self, ctx: Mapping[str, Any] | None, req_body: Any, rsp_body: Any,
               *args: Option) -> None:
        """Send ``req_body`` and fill ``rsp_body`` with the reply."""
        options = Options()
        for apply in args:
            apply(options)
        if options.client_transport is None:
            raise ClientError("client transport is not set")
        options.client_transport.send(
            ctx, req_body, rsp_body, options.client_transport_option
        )


DEFAULT_CLIENT = Client()