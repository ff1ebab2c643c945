from __future__ import annotations

import socket
import struct

import pytest

from pingx._icmp import ICMP_HEADER, icmp_checksum

IDENTIFIER = 0x1234
TARGET_V4 = "192.0.2.1"
TARGET_V6 = "2001:db8::1"


def icmp_message(type_: int, identifier: int, sequence: int, data: bytes = b"", code: int = 0) -> bytes:
    header = ICMP_HEADER.pack(type_, code, 0, identifier, sequence)
    checksum = icmp_checksum(header + data)
    return ICMP_HEADER.pack(type_, code, checksum, identifier, sequence) + data


def ipv4_datagram(
    payload: bytes,
    src: str = TARGET_V4,
    dst: str = "198.51.100.7",
    protocol: int = socket.IPPROTO_ICMP,
) -> bytes:
    header = struct.pack(
        "!BBHHHBBH4s4s",
        0x45,
        0,
        20 + len(payload),
        0,
        0,
        57,
        protocol,
        0,
        socket.inet_aton(src),
        socket.inet_aton(dst),
    )
    return header + payload


def ipv6_datagram(
    payload: bytes,
    src: str = "2001:db8::7",
    dst: str = TARGET_V6,
    next_header: int = socket.IPPROTO_ICMPV6,
) -> bytes:
    header = struct.pack(
        "!IHBB16s16s",
        0x60000000,
        len(payload),
        next_header,
        64,
        socket.inet_pton(socket.AF_INET6, src),
        socket.inet_pton(socket.AF_INET6, dst),
    )
    return header + payload

class FakeSocket:
    """Stand-in for a raw socket, replaying canned datagrams."""

    def __init__(self, family, type_, proto, replies, send_error=None):
        self.family = family
        self.type = type_
        self.proto = proto
        self.replies = list(replies)
        self.send_error = send_error
        self.options: dict[tuple[int, int], int] = {}
        self.sent: list[tuple[bytes, tuple]] = []
        self.timeouts: list[float] = []
        self.closed = False

    def setsockopt(self, level, option, value):
        self.options[(level, option)] = value

    def settimeout(self, value):
        self.timeouts.append(value)

    def sendto(self, data, address):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, address))
        return len(data)

    def recvfrom(self, size):
        if not self.replies:
            raise socket.timeout("timed out")
        reply = self.replies.pop(0)
        if callable(reply):
            reply = reply(self.sent[-1][0])
        return reply, (self.sent[-1][1][0], 0)

    def close(self):
        self.closed = True


class FakeNetwork:
    def __init__(self) -> None:
        self.replies: list = []
        self.send_error = None
        self.socket_error = None
        self.resolve_error = None
        self.sockets: list[FakeSocket] = []
        self.lookups: list[tuple[str, int]] = []

    @property
    def socket(self) -> FakeSocket:
        return self.sockets[-1]

    def open(self, family, type_, proto):
        if self.socket_error is not None:
            raise self.socket_error
        sock = FakeSocket(family, type_, proto, self.replies, send_error=self.send_error)
        self.sockets.append(sock)
        return sock

    def getaddrinfo(self, host, port, family=0, *args, **kwargs):
        self.lookups.append((host, family))
        if self.resolve_error is not None:
            raise self.resolve_error
        if family == socket.AF_INET6:
            return [(family, socket.SOCK_RAW, 58, "", (TARGET_V6, 0, 0, 0))]
        return [(family, socket.SOCK_RAW, 1, "", (TARGET_V4, 0))]


@pytest.fixture
def network(monkeypatch) -> FakeNetwork:
    fake = FakeNetwork()
    monkeypatch.setattr(socket, "socket", fake.open)
    monkeypatch.setattr(socket, "getaddrinfo", fake.getaddrinfo)
    return fake
