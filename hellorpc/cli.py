"""Command-line entry points for the greeting client and server."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from hellorpc.client import with_target
from hellorpc.helloworld import (
    HelloClientProxy,
    HelloReply,
    HelloRequest,
    register_hello_server,
)
from hellorpc.server import DEFAULT_CONFIG_PATH, Server, ServerError


class GreeterImpl:
    """A greeting service that answers ``Hello <msg>``."""

    def hello(self, req: HelloRequest) -> HelloReply:
        return HelloReply(msg="Hello " + req.msg)


def client_main(argv: Sequence[str] | None = None) -> int:
    """Send one greeting and print the reply."""
    parser = argparse.ArgumentParser(prog="hellorpc-client", description=client_main.__doc__)
    parser.add_argument("--target", default="127.0.0.1:8000", help="server address host:port")
    parser.add_argument("--msg", default="world", help="text to send")
    args = parser.parse_args(argv)

    proxy = HelloClientProxy(with_target(args.target))
    try:
        rsp = proxy.hello({}, HelloRequest(msg=args.msg))
    except Exception as exc:
        print("RPC call error:", exc)
        return 1
    print("Response:", rsp.msg)
    return 0


def server_main(argv: Sequence[str] | None = None) -> int:
    """Serve the greeting service on the configured services."""
    parser = argparse.ArgumentParser(prog="hellorpc-server", description=server_main.__doc__)
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    parser.add_argument("--address", default=":8000", help="address to listen on")
    args = parser.parse_args(argv)

    try:
        server = Server(config_path=args.config)
    except ServerError as exc:
        print(f"error reading config file: {exc}", file=sys.stderr)
        return 1
    register_hello_server(server, GreeterImpl())
    server.serve(args.address)
    print("server stopped")
    return 0