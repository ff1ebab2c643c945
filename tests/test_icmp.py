import pytest

from pingx import DecodeError, EncodeError
from pingx._icmp import (
    ICMP_ECHO_REQUEST,
    ICMPV6_ECHO_REQUEST,
    PROTOCOL_ICMP,
    PROTOCOL_ICMPV6,
    decode_message,
    encode_echo,
    icmp_checksum,
    protocol_params,
    strip_ipv4_header,
)

from conftest import ipv4_datagram


@pytest.mark.parametrize(
    "ip_version, protocol, echo_type",
    [(4, PROTOCOL_ICMP, ICMP_ECHO_REQUEST), (6, PROTOCOL_ICMPV6, ICMPV6_ECHO_REQUEST)],
)
def test_echo_request_round_trip(ip_version, protocol, echo_type):
    params = protocol_params(ip_version)
    packet = encode_echo(params, 0xBEEF, 42, b"PLS-GIB-INTERNSHIP")

    decoded = decode_message(protocol, packet)

    assert decoded.type == echo_type
    assert decoded.code == 0
    assert decoded.id == 0xBEEF
    assert decoded.sequence == 42
    assert decoded.data == b"PLS-GIB-INTERNSHIP"


def test_ipv4_checksum_is_valid():
    packet = encode_echo(protocol_params(4), 1, 1, b"odd")

    assert decode_message(PROTOCOL_ICMP, packet).checksum != 0
    assert icmp_checksum(packet) == 0


def test_ipv6_checksum_left_to_kernel():
    packet = encode_echo(protocol_params(6), 1, 1, b"data")

    assert decode_message(PROTOCOL_ICMPV6, packet).checksum == 0


def test_known_checksum():
    # echo request, id=1 seq=1, no payload
    assert icmp_checksum(bytes([8, 0, 0, 0, 0, 1, 0, 1])) == 0xF7FD


def test_protocol_params():
    assert protocol_params(4).protocol == 1
    assert protocol_params(6).protocol == 58
    assert protocol_params(4).echo_reply == 0
    assert protocol_params(6).echo_reply == 129
    with pytest.raises(ValueError):
        protocol_params(5)


def test_encode_rejects_out_of_range_identifier():
    with pytest.raises(EncodeError):
        encode_echo(protocol_params(4), 0x10000, 0, b"")


def test_decode_short_message():
    with pytest.raises(DecodeError):
        decode_message(PROTOCOL_ICMP, b"\x00\x00\x00")


def test_decode_unknown_protocol():
    with pytest.raises(DecodeError):
        decode_message(17, bytes(8))


def test_strip_ipv4_header():
    message = encode_echo(protocol_params(4), 7, 8, b"xyz")

    assert strip_ipv4_header(ipv4_datagram(message)) == message


def test_strip_ipv4_header_with_options():
    message = encode_echo(protocol_params(4), 7, 8, b"xyz")
    datagram = ipv4_datagram(message)
    with_options = bytes([0x46]) + datagram[1:20] + b"\x01\x01\x01\x00" + message

    assert strip_ipv4_header(with_options) == message


@pytest.mark.parametrize(
    "packet",
    [
        b"\x45" + bytes(10),
        b"\x60" + bytes(40),
        ipv4_datagram(b"\x00\x00\x00"),
    ],
)
def test_strip_ipv4_header_rejects_bad_packets(packet):
    with pytest.raises(DecodeError):
        strip_ipv4_header(packet)
