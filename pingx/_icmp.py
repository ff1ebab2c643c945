from __future__ import annotations

import logging
import socket
import struct

from rich.console import Console
from rich.logging import RichHandler

from ._exceptions import DecodeError, EncodeError
from ._models import IcmpPacket, ProtocolParams

ICMP_ECHO_REPLY = 0
ICMP_DEST_UNREACHABLE = 3
ICMP_ECHO_REQUEST = 8
ICMP_TIME_EXCEEDED = 11

ICMPV6_DEST_UNREACHABLE = 1
ICMPV6_TIME_EXCEEDED = 3
ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_REPLY = 129
ICMPV6_ROUTER_SOLICITATION = 133
ICMPV6_ROUTER_ADVERTISEMENT = 134
ICMPV6_NEIGHBOR_SOLICITATION = 135
ICMPV6_NEIGHBOR_ADVERTISEMENT = 136

PROTOCOL_ICMP = 1
PROTOCOL_ICMPV6 = 58

ICMP_HEADER = struct.Struct("!BBHHH")

PROTOCOLS = {
    4: ProtocolParams(
        ip_version=4,
        family=socket.AF_INET,
        protocol=PROTOCOL_ICMP,
        echo_request=ICMP_ECHO_REQUEST,
        echo_reply=ICMP_ECHO_REPLY,
    ),
    6: ProtocolParams(
        ip_version=6,
        family=socket.AF_INET6,
        protocol=PROTOCOL_ICMPV6,
        echo_request=ICMPV6_ECHO_REQUEST,
        echo_reply=ICMPV6_ECHO_REPLY,
    ),
}


# ------------- Logger
console = Console()
logger = logging.getLogger("pingx")


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich, the way the CLI wants them."""
    logging.basicConfig(
        level="DEBUG" if verbose else "INFO",
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                markup=True,
                show_time=False,
                show_path=verbose,
            )
        ],
    )


def protocol_params(ip_version: int) -> ProtocolParams:
    try:
        return PROTOCOLS[ip_version]
    except KeyError:
        raise ValueError(f"Unsupported IP version: {ip_version!r}") from None


def icmp_checksum(data: bytes) -> int:
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack("!%dH" % (len(data) // 2), data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def encode_echo(
    params: ProtocolParams, identifier: int, sequence: int, payload: bytes
) -> bytes:
    """Encode an echo request.

    ICMPv6 checksums cover a pseudo header only the kernel knows, so the
    field is left zero for the kernel to fill in.
    """
    try:
        header = ICMP_HEADER.pack(params.echo_request, 0, 0, identifier, sequence)
    except struct.error as exc:
        raise EncodeError(f"Cannot encode echo request: {exc}") from exc

    if params.protocol != PROTOCOL_ICMP:
        return header + payload

    checksum = icmp_checksum(header + payload)
    header = ICMP_HEADER.pack(params.echo_request, 0, checksum, identifier, sequence)
    return header + payload


def decode_message(protocol: int, data: bytes) -> IcmpPacket:
    """Decode an ICMP message (without any IP header) for ``protocol``."""
    if protocol not in (PROTOCOL_ICMP, PROTOCOL_ICMPV6):
        raise DecodeError(f"Unknown ICMP protocol number {protocol}")
    if len(data) < ICMP_HEADER.size:
        raise DecodeError(
            f"Message shorter than ICMP header ({len(data)} < {ICMP_HEADER.size} bytes)."
        )

    icmph = ICMP_HEADER.unpack(data[: ICMP_HEADER.size])
    return IcmpPacket(
        type=icmph[0],
        code=icmph[1],
        checksum=icmph[2],
        id=icmph[3],
        sequence=icmph[4],
        data=bytes(data[ICMP_HEADER.size :]),
    )


def strip_ipv4_header(pkt: bytes) -> bytes:
    """Return the payload of an IPv4 datagram read from a raw socket."""
    if len(pkt) < 20:
        raise DecodeError("Packet shorter than minimum IP header length (20 bytes).")

    version = pkt[0] >> 4
    iph_length = (pkt[0] & 0xF) * 4
    if version != 4 or iph_length < 20:
        raise DecodeError(f"Not an IPv4 header (version={version}, ihl={iph_length}).")
    if len(pkt) < iph_length + ICMP_HEADER.size:
        raise DecodeError(
            "Packet shorter than IP header + ICMP header (IHL + 8 bytes)."
        )
    return pkt[iph_length:]
