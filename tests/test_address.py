import ipaddress
import socket
from collections import namedtuple
from unittest import mock

import pytest

from sylar.address import (
    Address,
    IPAddress,
    IPv4Address,
    IPv6Address,
    UnixAddress,
    UnknownAddress,
    get_interface_address,
    get_interface_addresses,
    lookup,
    lookup_any,
    lookup_any_ip_address,
)

_Nic = namedtuple("_Nic", "family address netmask broadcast ptp")


def _fake_info(family, sockaddr):
    return (family, socket.SOCK_STREAM, 6, "", sockaddr)


def test_ipv4_create_and_str():
    addr = IPv4Address.create("192.168.1.10", 80)
    assert str(addr) == "192.168.1.10:80"
    assert addr.port == 80
    assert addr.family == socket.AF_INET


def test_ipv4_create_invalid_returns_none():
    assert IPv4Address.create("not-an-ip", 1) is None
    assert IPv4Address.create("300.1.1.1", 1) is None


def test_ipv4_sockaddr_layout():
    addr = IPv4Address.create("10.0.0.1", 8080)
    raw = addr.to_bytes()
    assert len(raw) == 16
    assert raw[2:4] == (8080).to_bytes(2, "big")
    assert raw[4:8] == socket.inet_aton("10.0.0.1")
    assert raw[8:] == bytes(8)


@pytest.mark.parametrize("cidr", ["192.168.1.10/24", "10.20.30.40/8", "172.16.5.9/20", "1.2.3.4/32"])
def test_ipv4_masks_match_ipaddress(cidr):
    host, prefix = cidr.split("/")
    prefix = int(prefix)
    net = ipaddress.ip_network(cidr, strict=False)
    addr = IPv4Address.create(host, 80)
    assert addr.broadcast_address(prefix) == IPv4Address.create(str(net.broadcast_address), 80)
    assert addr.network_address(prefix) == IPv4Address.create(str(net.network_address), 80)
    assert addr.subnet_mask(prefix) == IPv4Address.create(str(net.netmask), 0)


def test_ipv4_prefix_too_large():
    addr = IPv4Address.create("1.2.3.4", 0)
    assert addr.broadcast_address(33) is None
    assert addr.network_address(33) is None


def test_ipv4_default_is_any():
    assert IPv4Address() == IPv4Address.create("0.0.0.0", 0)


def test_port_setter_validates():
    addr = IPv4Address()
    addr.port = 443
    assert addr.port == 443
    with pytest.raises(ValueError):
        addr.port = 70000


def test_ordering_and_equality():
    a = IPv4Address.create("10.0.0.2", 1)
    b = IPv4Address.create("10.0.0.1", 2)
    c = IPv4Address.create("10.0.0.1", 1)
    assert sorted([a, b, c]) == [c, a, b]
    assert c == IPv4Address.create("10.0.0.1", 1)
    assert hash(c) == hash(IPv4Address.create("10.0.0.1", 1))
    assert a != c


def test_ipv6_str_loopback():
    addr = IPv6Address.create("::1", 80)
    assert str(addr) == "[::1]:80"


def test_ipv6_str_link_local():
    assert str(IPv6Address.create("fe80::1", 0)) == "[fe80::1]:0"


def test_ipv6_default_is_any():
    assert str(IPv6Address()) == "[::]:0"
    assert IPv6Address() == IPv6Address.create("::", 0)


def test_ipv6_sockaddr_layout():
    addr = IPv6Address.create("2001:db8::1", 443)
    raw = addr.to_bytes()
    assert len(raw) == 28
    assert raw[2:4] == (443).to_bytes(2, "big")
    assert raw[8:24] == socket.inet_pton(socket.AF_INET6, "2001:db8::1")


def test_ipv6_invalid():
    assert IPv6Address.create("zz::1", 0) is None
    with pytest.raises(ValueError):
        IPv6Address(b"\x00" * 4, 0)


@pytest.mark.parametrize("cidr", ["2001:db8::1/64", "2001:db8:abcd:12::7/60", "fe80::1:2/8", "::1/0"])
def test_ipv6_masks_match_ipaddress(cidr):
    host, prefix = cidr.split("/")
    prefix = int(prefix)
    net = ipaddress.ip_network(cidr, strict=False)
    addr = IPv6Address.create(host, 80)
    assert addr.broadcast_address(prefix) == IPv6Address.create(str(net.broadcast_address), 80)
    assert addr.network_address(prefix) == IPv6Address.create(str(net.network_address), 80)
    assert addr.subnet_mask(prefix) == IPv6Address.create(str(net.netmask), 0)


def test_ipv6_full_prefix_keeps_address():
    addr = IPv6Address.create("2001:db8::5", 9)
    assert addr.broadcast_address(128) == addr
    assert addr.network_address(128) == addr
    assert addr.broadcast_address(129) is None


def test_ipaddress_create_numeric():
    v4 = IPAddress.create("127.0.0.1", 8020)
    assert isinstance(v4, IPv4Address)
    assert v4 == IPv4Address.create("127.0.0.1", 8020)
    v6 = IPAddress.create("::1", 5)
    assert v6 == IPv6Address.create("::1", 5)


def test_ipaddress_create_failure():
    with mock.patch("sylar.address.socket.getaddrinfo", side_effect=socket.gaierror("boom")):
        assert IPAddress.create("nowhere.invalid", 1) is None


def test_unix_address_length_and_str():
    path = "/tmp/sylar.sock"
    addr = UnixAddress(path)
    assert addr.addr_len == 2 + len(path) + 1
    assert str(addr) == path
    assert addr.to_bytes()[2:2 + len(path)] == path.encode()


def test_unix_abstract_address():
    addr = UnixAddress("\0abstract")
    assert addr.addr_len == 2 + len("\0abstract")
    assert str(addr) == "\\0abstract"


def test_unix_path_too_long():
    with pytest.raises(ValueError):
        UnixAddress("x" * 200)


def test_unix_addr_len_settable():
    addr = UnixAddress()
    addr.addr_len = 10
    assert addr.addr_len == 10
    assert len(addr.to_bytes()) == 10


def test_unknown_address():
    addr = UnknownAddress(99, b"ab")
    assert str(addr) == "UnknownAddress family=ab"
    assert addr.family == 99
    assert len(addr.to_bytes()) == 16


def test_from_sockaddr_dispatch():
    v4 = Address.from_sockaddr(socket.AF_INET, ("127.0.0.1", 22))
    v6 = Address.from_sockaddr(socket.AF_INET6, ("fe80::1%lo", 22, 0, 1))
    other = Address.from_sockaddr(12345, b"xyz")
    assert v4 == IPv4Address.create("127.0.0.1", 22)
    assert isinstance(v6, IPv6Address) and v6.port == 22
    assert isinstance(other, UnknownAddress) and other.family == 12345


def test_lookup_numeric_ipv4():
    result = lookup_any("127.0.0.1:8020", socket.AF_INET, socket.SOCK_STREAM)
    assert result == IPv4Address.create("127.0.0.1", 8020)


@pytest.mark.parametrize(
    "host, node, service",
    [
        ("[::1]:80", "::1", "80"),
        ("[::1]", "::1", None),
        ("example.com:443", "example.com", "443"),
        ("example.com", "example.com", None),
        ("fe80::1", "fe80::1", None),
    ],
)
def test_lookup_splits_host(host, node, service):
    info = [_fake_info(socket.AF_INET, ("127.0.0.1", 80))]
    with mock.patch("sylar.address.socket.getaddrinfo", return_value=info) as fake:
        result = lookup(host)
    assert fake.call_args.args[:2] == (node, service)
    assert result == [IPv4Address.create("127.0.0.1", 80)]


def test_lookup_failure():
    with mock.patch("sylar.address.socket.getaddrinfo", side_effect=socket.gaierror("x")):
        assert lookup("nowhere.invalid") == []
        assert lookup_any("nowhere.invalid") is None
        assert lookup_any_ip_address("nowhere.invalid") is None


def test_lookup_any_ip_address_prefers_ipv4():
    infos = [
        _fake_info(socket.AF_INET6, ("::1", 80, 0, 0)),
        _fake_info(socket.AF_INET, ("127.0.0.1", 80)),
    ]
    with mock.patch("sylar.address.socket.getaddrinfo", return_value=infos):
        assert lookup_any("localhost:80") == IPv6Address.create("::1", 80)
        assert lookup_any_ip_address("localhost:80") == IPv4Address.create("127.0.0.1", 80)


def _fake_nics():
    return {
        "eth0": [
            _Nic(socket.AF_INET, "192.168.1.10", "255.255.255.0", None, None),
            _Nic(socket.AF_INET6, "fe80::1%eth0", "ffff:ffff:ffff:ffff::", None, None),
            _Nic(-1, "00:00:00:00:00:00", None, None, None),
        ],
        "lo": [_Nic(socket.AF_INET, "127.0.0.1", "255.0.0.0", None, None)],
    }


def test_get_interface_addresses():
    with mock.patch("sylar.address.psutil.net_if_addrs", return_value=_fake_nics()):
        result = get_interface_addresses()
    assert result["eth0"] == [
        (IPv4Address.create("192.168.1.10", 0), 24),
        (IPv6Address.create("fe80::1", 0), 64),
    ]
    assert result["lo"] == [(IPv4Address.create("127.0.0.1", 0), 8)]


def test_get_interface_addresses_family_filter():
    with mock.patch("sylar.address.psutil.net_if_addrs", return_value=_fake_nics()):
        result = get_interface_addresses(socket.AF_INET6)
    assert list(result) == ["eth0"]
    assert [addr for addr, _ in result["eth0"]] == [IPv6Address.create("fe80::1", 0)]


def test_get_interface_address_named():
    with mock.patch("sylar.address.psutil.net_if_addrs", return_value=_fake_nics()):
        assert get_interface_address("lo") == [(IPv4Address.create("127.0.0.1", 0), 8)]
        assert get_interface_address("missing") == []


def test_get_interface_address_wildcard():
    assert get_interface_address("*") == [(IPv4Address(), 0), (IPv6Address(), 0)]
    assert get_interface_address("", socket.AF_INET) == [(IPv4Address(), 0)]
    assert get_interface_address("*", socket.AF_INET6) == [(IPv6Address(), 0)]