# sylar

Building blocks for network servers in Python. The package has five modules.

- `sylar.bytearray` provides `ByteArray`, a growable byte buffer built from
  fixed-size blocks. It reads and writes:
  - fixed-width integers, in big-endian by default or little-endian when
    `little_endian` is set;
  - zigzag/varint-encoded integers;
  - floats and doubles;
  - length-prefixed strings.

  A `str` is written as UTF-8 and strings are read back as `bytes`. Reading
  past the end raises `IndexError`. `get_read_buffers` and
  `get_write_buffers` return `memoryview`s over the blocks, so socket I/O
  can fill them or send them directly. Other methods are `peek`, `to_bytes`,
  `to_hex_string`, `write_to_file` and `read_from_file`.
- `sylar.address` provides `IPv4Address`, `IPv6Address`, `UnixAddress` and
  `UnknownAddress`.
  - Every address has `to_bytes()`, which gives its raw `sockaddr` bytes.
    Addresses compare and order by those bytes.
  - IP addresses can compute `broadcast_address`, `network_address` and
    `subnet_mask`.
  - Module functions resolve host names: `lookup`, `lookup_any` and
    `lookup_any_ip_address`. Each accepts `host:port` or `[v6]:port`.
  - `get_interface_addresses` and `get_interface_address` list interface
    addresses with their prefix lengths. They use `psutil` to do so.
- `sylar.config` provides `Config`, a process-wide registry of typed
  `ConfigVar`s with dotted lower-case names.
  - `Config.lookup` creates or fetches a variable. It returns `None` on a
    type clash and raises `ValueError` for an invalid name.
  - `Config.load_from_yaml` and `Config.load_from_string` update registered
    variables from YAML.
  - Listeners added with `add_listener` are called with `(old, new)` when a
    value changes.
- `sylar.fdmanager` provides `FdManager` and `FdCtx`, which track file
  descriptors.
  - They record whether a descriptor is a socket. Sockets are switched to
    non-blocking mode.
  - They record user and system non-blocking flags.
  - They record receive and send timeouts in milliseconds, selected by
    `TimeoutKind`.
- `sylar.http` provides the `HttpMethod` and `HttpStatus` enums, conversion
  helpers, and `HttpRequest` and `HttpResponse` objects.
  - Headers, parameters and cookies are kept in a `CaseInsensitiveMap`.
  - `dump`/`to_string` render a message in HTTP/1.x wire form.
  - `get_header_as` and the related methods convert values to a given type.

## Install

```
pip install .
```

## Examples

Write to a buffer and read back:

```python
from sylar.bytearray import ByteArray

ba = ByteArray(4096)
ba.write_int32(-5)
ba.write_string_vint(b"hello")
ba.position = 0
assert ba.read_int32() == -5
assert ba.read_string_vint() == b"hello"
```

Addresses:

```python
from sylar.address import IPv4Address

addr = IPv4Address.create("192.168.1.10", 80)
print(addr)                        # 192.168.1.10:80
print(addr.network_address(24))    # 192.168.1.0:80
print(addr.subnet_mask(24))        # 255.255.255.0:0
```

Configuration from YAML:

```python
from sylar.config import Config

port = Config.lookup("server.port", 8080, "listen port")
port.add_listener(lambda old, new: print(f"port {old} -> {new}"))
Config.load_from_string("server:\n  port: 9000\n")
assert port.value == 9000
```

An HTTP request:

```python
from sylar.http import HttpMethod, HttpRequest

req = HttpRequest()
req.method = HttpMethod.POST
req.set_header("Host", "example.com")
req.body = "hi"
print(req.to_string())
# POST / HTTP/1.1
# connection: close
# Host:example.com
# content-length: 2
#
# hi
```

## What it does not do

This is a library of parts only. It does not provide:

- a TCP or HTTP server;
- an event loop or coroutine scheduler;
- an HTTP parser;
- any command-line program.

`FdManager` records descriptor state but performs no I/O itself.

## Tests

```
pip install .[test]
pytest
```