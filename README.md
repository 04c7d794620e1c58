# hellorpc

A small RPC framework that carries unary calls over TCP in a simple binary
frame, with a ready-made greeting service and a bounded connection pool.

## Wire format

Every frame starts with a 16-byte big-endian header:

| field           | size |
|-----------------|------|
| magic number    | 2 bytes, always `0x1234` |
| version         | 1 byte, always `1` |
| message type    | 1 byte |
| sequence id     | 4 bytes |
| protocol length | 4 bytes |
| body length     | 4 bytes |

The header is followed by a compact JSON object,
`{"service_name": ..., "method_name": ...}`, and then by the serialized
message body. A frame with a wrong magic number or version is rejected with
`hellorpc.codec.CodecError`.

## Modules

- `hellorpc.message` — `Message` (service and method name of one call) and
  `get_message(ctx)`, which returns the message stored in a context mapping, or
  attaches a fresh one to a copy of the context.
- `hellorpc.protocol` — `ProtocolData` with `serialize()`, and
  `deserialize_protocol_data(data)`, which raises `ProtocolError` for empty or
  malformed data.
- `hellorpc.serializer` — `marshal(body)` and `unmarshal(data, body)`. Any
  object with `SerializeToString` / `ParseFromString` works, including
  generated protobuf messages; anything else raises `SerializationError`.
- `hellorpc.codec` — `FrameHeader` (with `pack()`), `parse_header(data)`,
  `ClientCodec`, `ServerCodec` and `read_frame(reader)`, which reads one whole
  frame from a socket or binary stream. `ServerCodec.decode` copies the
  service and method names from the frame into the given `Message`;
  `ClientCodec.decode` only returns the body.
- `hellorpc.transport` — `ClientTransport.send(ctx, req_body, rsp_body, opt)`
  opens a TCP connection to `opt.address`, sends one frame and reads the reply.
  `ServerTransport` accepts connections, answers one frame on each through its
  registered handler, and runs `listen_and_serve(network, address)` until
  `shutdown()` is called. `wait_until_listening()` and `server_address` give
  the bound address (handy with port 0).
- `hellorpc.client` — `Client.invoke(ctx, req_body, rsp_body, *options)` with
  the options `with_target("host:port")` and `with_codec(codec)`.
- `hellorpc.server` — `load_config(path)` reads a YAML file into
  `ServerConfig`; `Server` builds one `Service` per configured entry.
  `Server.register(service_desc, impl)` binds a `ServiceDesc` (a list of
  `MethodDesc`) to every service, and `Server.serve(address)` serves each
  service in turn. `new_service(name, *options)` takes `with_address` and
  `with_transport`. Failures raise `ServerError`.
- `hellorpc.pool` — `ConnPool` lends out `PooledConnection`s (closing one
  hands it back), at most `max_active` at a time, keeps up to `max_idle` idle,
  drops connections older than `conn_ttl`, probes idle ones before reuse, and
  raises `ConnTimeoutError` after waiting `max_wait` seconds (`0` waits
  forever) or `PoolClosedError` once closed. `stats()` returns the `active`,
  `idle`, `hits`, `misses`, `timeouts` and `errors` counters. `PoolManager`
  keeps one pool per address (10 active, 5 idle, 60 s idle timeout, 300 s
  lifetime).
- `hellorpc.helloworld` — the greeting service: `HelloRequest` and
  `HelloReply` (a single string field `msg`, encoded in protobuf wire format),
  `hello_handler`, `register_hello_server(server, impl)` and
  `HelloClientProxy`.
- `hellorpc.cli` — the two commands below and `GreeterImpl`, which answers
  `Hello <msg>`.

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Running the example service

The server builds one service per entry in `rpc.yaml` (in the working
directory unless `--config` names another file):

```yaml
server:
  service:
    - name: helloworld
      ip: 127.0.0.1
      port: 8000
```

Start it:

```
hellorpc-server
```

It listens on `:8000` by default; `--address` changes that. If the
configuration file cannot be read the command prints an error and exits
with status 1.

In another terminal, call it:

```
hellorpc-client
```

By default the client sends `world` to `127.0.0.1:8000` (`--msg` and
`--target` change these) and prints:

```
Response: Hello world
```

A failed call prints `RPC call error: ...` and exits with status 1.

## Using it in code

```python
from hellorpc.client import with_target
from hellorpc.helloworld import HelloClientProxy, HelloRequest

proxy = HelloClientProxy(with_target("127.0.0.1:8000"))
reply = proxy.hello({}, HelloRequest(msg="world"))
print(reply.msg)
```

On the serving side, write a class with a `hello(req)` method that returns a
`HelloReply`, pass an instance to `register_hello_server` together with a
`Server`, and call `Server.serve`.

## What it does not do

- The client transport opens a new TCP connection for every call; it does not
  use `hellorpc.pool`. The pool is a separate building block, and its default
  health probe (send one byte, expect one byte back within 50 ms) is not
  answered by `ServerTransport`.
- Each connection carries exactly one request and one reply.
- Every frame is sent with message type "request" and sequence id 1, so
  replies are not matched to requests by id.
- There is no encryption, authentication, service discovery, or per-call
  timeout.