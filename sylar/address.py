"""Socket address types and host / interface lookup helpers.

Every address can render itself as the raw ``sockaddr`` structure used by
the Linux socket layer (:meth:`Address.to_bytes`); ordering and equality
compare those bytes, shorter addresses first on a common prefix.
"""

from __future__ import annotations

import functools
import ipaddress
import logging
import os
import socket
import struct
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union

import psutil

logger = logging.getLogger(__name__)

AF_UNSPEC = socket.AF_UNSPEC
AF_INET = socket.AF_INET
AF_INET6 = socket.AF_INET6
AF_UNIX = getattr(socket, "AF_UNIX", 1)

_SUN_PATH_OFFSET = 2
_SUN_PATH_LEN = 108
MAX_PATH_LEN = _SUN_PATH_LEN - 1
_SA_DATA_LEN = 14

INADDR_ANY = 0


def _pack_family(family: int) -> bytes:
    return struct.pack("=H", family)


def _check_port(port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return port


def _host_mask32(bits: int) -> int:
    """Mask of the host part of a 32-bit address with ``bits`` prefix bits."""
    return ((1 << (32 - bits)) - 1) & 0xFFFFFFFF


def _host_mask8(bits: int) -> int:
    return ((1 << (8 - bits)) - 1) & 0xFF


@functools.total_ordering
class Address(ABC):
    """Base of all socket addresses."""

    @staticmethod
    def from_sockaddr(family: int, sockaddr: Any) -> "Address":
        """Build an address from a family and a sockaddr as Python's socket module gives it."""
        if family == AF_INET:
            host, port = sockaddr[0], sockaddr[1]
            return IPv4Address(int(ipaddress.IPv4Address(host)), port)
        if family == AF_INET6:
            host, port = sockaddr[0], sockaddr[1]
            host = host.split("%", 1)[0]
            result = IPv6Address(socket.inet_pton(AF_INET6, host), port)
            if len(sockaddr) >= 4:
                result._flowinfo = sockaddr[2]
                result._scope_id = sockaddr[3]
            return result
        if isinstance(sockaddr, (bytes, bytearray, memoryview)):
            data = bytes(sockaddr)
        elif isinstance(sockaddr, str):
            data = os.fsencode(sockaddr)
        else:
            data = b""
        return UnknownAddress(family, data)

    @property
    @abstractmethod
    def family(self) -> int:
        """Address family."""

    @abstractmethod
    def to_bytes(self) -> bytes:
        """The raw sockaddr structure."""

    @property
    def addr_len(self) -> int:
        """Length of the raw sockaddr structure."""
        return len(self.to_bytes())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Address):
            return NotImplemented
        return self.to_bytes() < other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


class IPAddress(Address):
    """An address with a port: IPv4 or IPv6."""

    @staticmethod
    def create(address: str, port: int = 0) -> Optional["IPAddress"]:
        """Resolve ``address`` (numeric or host name) and set its port, or None."""
        try:
            results = socket.getaddrinfo(address, None, AF_UNSPEC, 0, 0, socket.AI_CANONNAME)
        except (socket.gaierror, UnicodeError) as exc:
            logger.debug("IPAddress.create(%s, %s) error=%s", address, port, exc)
            return None
        if not results:
            return None
        family, _type, _proto, _canon, sockaddr = results[0]
        try:
            result = Address.from_sockaddr(family, sockaddr)
        except (ValueError, OSError):
            return None
        if not isinstance(result, IPAddress):
            return None
        result.port = port
        return result

    @property
    @abstractmethod
    def port(self) -> int:
        """Port number."""

    @port.setter
    @abstractmethod
    def port(self, value: int) -> None:
        ...

    @abstractmethod
    def broadcast_address(self, prefix_len: int) -> Optional["IPAddress"]:
        """Address with every host bit set."""

    @abstractmethod
    def network_address(self, prefix_len: int) -> Optional["IPAddress"]:
        """Address with every host bit cleared."""

    @abstractmethod
    def subnet_mask(self, prefix_len: int) -> Optional["IPAddress"]:
        """Netmask of the given prefix length."""


class IPv4Address(IPAddress):
    """IPv4 address; ``address`` is a host-order 32-bit integer."""

    def __init__(self, address: int = INADDR_ANY, port: int = 0) -> None:
        if not 0 <= address <= 0xFFFFFFFF:
            raise ValueError(f"IPv4 address out of range: {address}")
        self._addr = address
        self._port = _check_port(port)

    @staticmethod
    def create(address: str, port: int = 0) -> Optional["IPv4Address"]:
        """Parse a dotted-quad string, or return None if it is not one."""
        try:
            packed = socket.inet_pton(AF_INET, address)
        except (OSError, ValueError) as exc:
            logger.debug("IPv4Address.create(%s, %s) error=%s", address, port, exc)
            return None
        return IPv4Address(struct.unpack("!I", packed)[0], port)

    @property
    def family(self) -> int:
        return AF_INET

    @property
    def address(self) -> int:
        """Address as a host-order integer."""
        return self._addr

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self._port = _check_port(value)

    def broadcast_address(self, prefix_len: int) -> Optional["IPv4Address"]:
        if prefix_len > 32:
            return None
        return IPv4Address(self._addr | _host_mask32(prefix_len), self._port)

    def network_address(self, prefix_len: int) -> Optional["IPv4Address"]:
        if prefix_len > 32:
            return None
        return IPv4Address(self._addr & ~_host_mask32(prefix_len) & 0xFFFFFFFF, self._port)

    def subnet_mask(self, prefix_len: int) -> Optional["IPv4Address"]:
        if prefix_len > 32:
            return None
        return IPv4Address(~_host_mask32(prefix_len) & 0xFFFFFFFF, 0)

    def to_bytes(self) -> bytes:
        return (_pack_family(AF_INET) + struct.pack("!HI", self._port, self._addr)
                + bytes(8))

    def __str__(self) -> str:
        return f"{socket.inet_ntop(AF_INET, struct.pack('!I', self._addr))}:{self._port}"


class IPv6Address(IPAddress):
    """IPv6 address; ``address`` is the 16 raw bytes."""

    def __init__(self, address: bytes = bytes(16), port: int = 0) -> None:
        raw = bytes(address)
        if len(raw) != 16:
            raise ValueError("IPv6 address must be 16 bytes")
        self._addr = raw
        self._port = _check_port(port)
        self._flowinfo = 0
        self._scope_id = 0

    @staticmethod
    def create(address: str, port: int = 0) -> Optional["IPv6Address"]:
        """Parse a textual IPv6 address, or return None if it is not one."""
        try:
            packed = socket.inet_pton(AF_INET6, address)
        except (OSError, ValueError) as exc:
            logger.debug("IPv6Address.create(%s, %s) error=%s", address, port, exc)
            return None
        return IPv6Address(packed, port)

    @property
    def family(self) -> int:
        return AF_INET6

    @property
    def address(self) -> bytes:
        """The 16 raw address bytes."""
        return self._addr

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, value: int) -> None:
        self._port = _check_port(value)

    def _derive(self, raw: bytearray) -> "IPv6Address":
        result = IPv6Address(bytes(raw), self._port)
        result._flowinfo = self._flowinfo
        result._scope_id = self._scope_id
        return result

    def broadcast_address(self, prefix_len: int) -> Optional["IPv6Address"]:
        if prefix_len > 128:
            return None
        raw = bytearray(self._addr)
        index = prefix_len // 8
        if index < 16:
            raw[index] |= _host_mask8(prefix_len % 8)
            raw[index + 1:] = b"\xff" * (15 - index)
        return self._derive(raw)

    def network_address(self, prefix_len: int) -> Optional["IPv6Address"]:
        if prefix_len > 128:
            return None
        raw = bytearray(self._addr)
        index = prefix_len // 8
        if index < 16:
            raw[index] &= ~_host_mask8(prefix_len % 8) & 0xFF
            raw[index + 1:] = bytes(15 - index)
        return self._derive(raw)

    def subnet_mask(self, prefix_len: int) -> Optional["IPv6Address"]:
        if prefix_len > 128:
            return None
        raw = bytearray(16)
        index = prefix_len // 8
        raw[:index] = b"\xff" * index
        if index < 16:
            raw[index] = ~_host_mask8(prefix_len % 8) & 0xFF
        return IPv6Address(bytes(raw), 0)

    def to_bytes(self) -> bytes:
        return (_pack_family(AF_INET6) + struct.pack("!HI", self._port, self._flowinfo)
                + self._addr + struct.pack("=I", self._scope_id))

    def __str__(self) -> str:
        words = struct.unpack("!8H", self._addr)
        parts = ["["]
        used_zero = False
        for i, word in enumerate(words):
            if word == 0 and not used_zero:
                continue
            if i and words[i - 1] == 0 and not used_zero:
                parts.append(":")
                used_zero = True
            if i:
                parts.append(":")
            parts.append(f"{word:x}")
        if not used_zero and words[7] == 0:
            parts.append("::")
        parts.append(f"]:{self._port}")
        return "".join(parts)


class UnixAddress(Address):
    """Unix domain socket path; a leading NUL selects the abstract namespace."""

    def __init__(self, path: Union[str, bytes, None] = None) -> None:
        if path is None:
            self._path = b""
            self._length = _SUN_PATH_OFFSET + MAX_PATH_LEN
            return
        raw = os.fsencode(path)
        length = len(raw) + 1
        if raw[:1] == b"\0":
            length -= 1
        if length > _SUN_PATH_LEN:
            raise ValueError("path too long")
        self._path = raw
        self._length = length + _SUN_PATH_OFFSET

    @property
    def family(self) -> int:
        return AF_UNIX

    @property
    def addr_len(self) -> int:
        return self._length

    @addr_len.setter
    def addr_len(self, value: int) -> None:
        self._length = value

    def _sun_path(self) -> bytes:
        return self._path.ljust(_SUN_PATH_LEN, b"\0")[:_SUN_PATH_LEN]

    def to_bytes(self) -> bytes:
        return (_pack_family(AF_UNIX) + self._sun_path())[:self._length]

    def __str__(self) -> str:
        sun_path = self._sun_path()
        if self._length > _SUN_PATH_OFFSET and sun_path[0] == 0:
            return "\\0" + os.fsdecode(sun_path[1:self._length - _SUN_PATH_OFFSET])
        return os.fsdecode(sun_path.split(b"\0", 1)[0])


class UnknownAddress(Address):
    """Address of a family this module does not interpret."""

    def __init__(self, family: int, data: bytes = b"") -> None:
        self._family = family
        self._data = bytes(data)[:_SA_DATA_LEN].ljust(_SA_DATA_LEN, b"\0")

    @property
    def family(self) -> int:
        return self._family

    def to_bytes(self) -> bytes:
        return _pack_family(self._family) + self._data

    def __str__(self) -> str:
        return "UnknownAddress family=" + self._data.split(b"\0", 1)[0].decode("latin-1")


def _split_host(host: str) -> Tuple[str, Optional[str]]:
    """Split ``host[:service]`` or ``[ipv6][:service]`` into node and service."""
    node = ""
    service: Optional[str] = None
    if host.startswith("["):
        end = host.find("]", 1)
        if end != -1:
            if host[end + 1:end + 2] == ":":
                service = host[end + 2:]
            node = host[1:end]
    if not node:
        service = None
        colon = host.find(":")
        if colon != -1 and host.find(":", colon + 1) == -1:
            node = host[:colon]
            service = host[colon + 1:]
    if not node:
        node = host
    return node, service


def lookup(host: str, family: int = AF_UNSPEC, type: int = 0,
           protocol: int = 0) -> List[Address]:
    """Resolve ``host`` (optionally with ``:port``) into addresses; empty on failure."""
    node, service = _split_host(host)
    try:
        infos = socket.getaddrinfo(node, service, family, type, protocol)
    except (socket.gaierror, UnicodeError) as exc:
        logger.debug("lookup(%s, %s, %s) error=%s", host, family, type, exc)
        return []
    return [Address.from_sockaddr(info[0], info[4]) for info in infos]


def lookup_any(host: str, family: int = AF_UNSPEC, type: int = 0,
               protocol: int = 0) -> Optional[Address]:
    """First address ``host`` resolves to, or None."""
    results = lookup(host, family, type, protocol)
    return results[0] if results else None


def lookup_any_ip_address(host: str, family: int = AF_UNSPEC, type: int = 0,
                          protocol: int = 0) -> Optional[IPAddress]:
    """First IPv4 address ``host`` resolves to, or None."""
    return next((addr for addr in lookup(host, family, type, protocol)
                 if isinstance(addr, IPv4Address)), None)


def _prefix_length(netmask: Optional[str]) -> int:
    if not netmask:
        return 0
    try:
        return int(ipaddress.ip_address(netmask.split("%", 1)[0])).bit_count()
    except ValueError:
        return 0


def get_interface_addresses(family: int = AF_UNSPEC) -> Dict[str, List[Tuple[Address, int]]]:
    """Map of interface name to its (address, prefix length) pairs."""
    result: Dict[str, List[Tuple[Address, int]]] = {}
    for name, entries in psutil.net_if_addrs().items():
        for entry in entries:
            entry_family = int(entry.family)
            if family != AF_UNSPEC and family != entry_family:
                continue
            if entry_family == AF_INET:
                sockaddr: Tuple[Any, ...] = (entry.address, 0)
            elif entry_family == AF_INET6:
                sockaddr = (entry.address, 0, 0, 0)
            else:
                continue
            try:
                addr = Address.from_sockaddr(entry_family, sockaddr)
            except (ValueError, OSError):
                logger.debug("skipping unparsable address %s on %s", entry.address, name)
                continue
            result.setdefault(name, []).append((addr, _prefix_length(entry.netmask)))
    return result


def get_interface_address(iface: str, family: int = AF_UNSPEC) -> List[Tuple[Address, int]]:
    """Addresses of one interface; ``""`` or ``"*"`` gives the wildcard addresses."""
    if not iface or iface == "*":
        result: List[Tuple[Address, int]] = []
        if family in (AF_INET, AF_UNSPEC):
            result.append((IPv4Address(), 0))
        if family in (AF_INET6, AF_UNSPEC):
            result.append((IPv6Address(), 0))
        return result
    return list(get_interface_addresses(family).get(iface, []))