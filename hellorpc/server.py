"""Server side: configuration, services and method routing."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from hellorpc.codec import DEFAULT_SERVER_CODEC, Codec, CodecError
from hellorpc.message import get_message
from hellorpc.serializer import SerializationError, marshal
from hellorpc.transport import DEFAULT_SERVER_TRANSPORT, ServerTransport

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./rpc.yaml"


class ServerError(Exception):
    """Raised for configuration, registration and request failures."""


@dataclass(frozen=True)
class ServiceConfig:
    """One configured service endpoint."""

    name: str
    ip: str = ""
    port: int = 0

    @property
    def address(self) -> str:
        return f"{self.ip}:{self.port}"


@dataclass
class ServerConfig:
    """The services a server offers."""

    services: list[ServiceConfig] = field(default_factory=list)


def _config_from(data: Any) -> ServerConfig:
    if data is None:
        return ServerConfig()
    if not isinstance(data, dict):
        raise ServerError("failed to parse config file: top level is not a mapping")
    server = data.get("server") or {}
    if not isinstance(server, dict):
        raise ServerError("failed to parse config file: 'server' is not a mapping")
    entries = server.get("service") or []
    if not isinstance(entries, list):
        raise ServerError("failed to parse config file: 'service' is not a list")
    services = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ServerError("failed to parse config file: service entry is not a mapping")
        name = entry.get("name") or ""
        ip = entry.get("ip") or ""
        port = entry.get("port") or 0
        if not isinstance(name, str) or not isinstance(ip, str):
            raise ServerError("failed to parse config file: name and ip must be strings")
        if isinstance(port, bool) or not isinstance(port, int):
            raise ServerError(f"failed to parse config file: invalid port {port!r}")
        services.append(ServiceConfig(name=name, ip=ip, port=port))
    return ServerConfig(services=services)


def load_config(path: str | Path) -> ServerConfig:
    """Read a YAML server configuration."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ServerError(f"failed to read config file: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ServerError(f"failed to parse config file: {exc}") from exc
    return _config_from(data)


@dataclass
class ServerOptions:
    """Settings of one service; they live as long as the service."""

    server_name: str = ""
    address: str = ""
    transport: ServerTransport | None = field(default_factory=lambda: DEFAULT_SERVER_TRANSPORT)
    codec: Codec = field(default_factory=lambda: DEFAULT_SERVER_CODEC)


ServerOption = Callable[[ServerOptions], None]


def with_transport(transport: ServerTransport | None) -> ServerOption:
    """Serve through ``transport``."""

    def apply(options: ServerOptions) -> None:
        options.transport = transport

    return apply


def with_address(address: str) -> ServerOption:
    """Set the service's address."""

    def apply(options: ServerOptions) -> None:
        options.address = address

    return apply


@dataclass
class MethodDesc:
    """A method name and the function that answers it: ``func(impl, request_bytes)``."""

    method_name: str
    func: Callable[[Any, bytes], Any]


@dataclass
class ServiceDesc:
    """A service and its methods."""

    service_name: str
    methods: list[MethodDesc] = field(default_factory=list)
    handler_type: type | None = None


class Service:
    """Routes decoded requests to registered methods."""

    def __init__(self, options: ServerOptions | None = None) -> None:
        self.options = options if options is not None else ServerOptions()
        self._handlers: dict[str, Callable[[bytes], Any]] = {}

    @property
    def name(self) -> str:
        return self.options.server_name

    @property
    def methods(self) -> tuple[str, ...]:
        """Names of the registered methods, in registration order."""
        return tuple(self._handlers)

    def register(self, service_desc: ServiceDesc, impl: Any) -> None:
        """Bind every method of ``service_desc`` to ``impl``."""
        if self.options.transport is None:
            self.options.transport = DEFAULT_SERVER_TRANSPORT
        for method in service_desc.methods:
            if method.method_name in self._handlers:
                raise ServerError(f"duplicate method name: {method.method_name}")
            if not callable(method.func):
                raise ServerError("method function is not a valid function")
            self._handlers[method.method_name] = functools.partial(method.func, impl)

    def serve(self, address: str) -> None:
        """Listen on ``address`` and answer requests until the transport stops."""
        transport = self.options.transport or DEFAULT_SERVER_TRANSPORT
        logger.info("server is listening on %s", address)
        transport.register_handler(self)
        try:
            transport.listen_and_serve("tcp", address)
        except (OSError, ValueError) as exc:
            raise ServerError(f"failed to listen: {exc}") from exc

    def handle(self, ctx: Mapping[str, Any] | None, frame: bytes) -> bytes:
        """Answer one request frame with a response frame."""
        ctx, msg = get_message(ctx)
        try:
            req_data = self.options.codec.decode(msg, frame)
        except CodecError as exc:
            raise ServerError(f"failed to decode frame: {exc}") from exc
        handler = self._handlers.get(msg.method_name)
        if handler is None:
            raise ServerError(f"failed to handle request: unknown method {msg.method_name!r}")
        try:
            response = handler(req_data)
        except Exception as exc:
            raise ServerError(f"failed to handle request: {exc}") from exc
        try:
            body = marshal(response)
        except SerializationError as exc:
            raise ServerError(f"failed to marshal response: {exc}") from exc
        return self.options.codec.encode(ctx, body)


def new_service(service_name: str, *args: ServerOption) -> Service:
    """Create a service named ``service_name`` with the given options applied."""
    options = ServerOptions(server_name=service_name)
    for apply in args:
        apply(options)
    return Service(options)


class Server:
    """A set of configured services that share every registered method."""

    def __init__(self, config: ServerConfig | None = None,
                 config_path: str | Path = DEFAULT_CONFIG_PATH) -> None:
        if config is None:
            config = load_config(config_path)
        self.services: dict[str, Service] = {
            entry.name: new_service(entry.name, with_address(entry.address))
            for entry in config.services
        }

    def register(self, service_desc: ServiceDesc, impl: Any) -> None:
        """Register ``service_desc`` with every service."""
        for service in self.services.values():
            try:
                service.register(service_desc, impl)
            except ServerError as exc:
                raise ServerError(
                    f"register service {service_desc.service_name} failed: {exc}"
                ) from exc

    def serve(self, address: str) -> None:
        """Serve each service on ``address`` in turn."""
        for service in self.services.values():
            try:
                service.serve(address)
            except ServerError as exc:
                logger.warning("service %s: %s", service.name, exc)