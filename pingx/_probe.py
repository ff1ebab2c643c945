"""Single echo request/reply exchange over a raw ICMP socket."""

from __future__ import annotations

import os
import socket
import struct
import time
from contextlib import closing
from typing import Optional

from ._exceptions import (
    ProbeError,
    ProbeTimeout,
    RawSocketPermissionError,
    ResolutionError,
    SendError,
    SocketError,
    UnexpectedReply,
)
from ._icmp import (
    ICMP_HEADER,
    ICMPV6_NEIGHBOR_ADVERTISEMENT,
    ICMPV6_NEIGHBOR_SOLICITATION,
    ICMPV6_ROUTER_ADVERTISEMENT,
    ICMPV6_ROUTER_SOLICITATION,
    PROTOCOL_ICMP,
    PROTOCOL_ICMPV6,
    decode_message,
    encode_echo,
    logger,
    protocol_params,
    strip_ipv4_header,
)
from ._models import IcmpPacket, ProbeOutcome, ProbeRequest, ProtocolParams

PAYLOAD = b"PLS-GIB-INTERNSHIP"
RECV_BUFFER = 1500
RTT_PRECISION = 2  # milliseconds rounded to 10 microseconds

NEIGHBOR_DISCOVERY = {ICMPV6_NEIGHBOR_SOLICITATION, ICMPV6_NEIGHBOR_ADVERTISEMENT}
ROUTER_DISCOVERY = {ICMPV6_ROUTER_SOLICITATION, ICMPV6_ROUTER_ADVERTISEMENT}

# Error messages quoting the offending datagram.
QUOTING_TYPES = {
    4: {3, 4, 5, 11, 12},
    6: {1, 2, 3, 4},
}
IPV6_HEADER_SIZE = 40


def default_identifier() -> int:
    return os.getpid() & 0xFFFF


def _open_socket(params: ProtocolParams) -> socket.socket:
    try:
        return socket.socket(params.family, socket.SOCK_RAW, params.protocol)
    except PermissionError as exc:
        raise RawSocketPermissionError() from exc
    except OSError as exc:
        raise SocketError(f"Cannot open raw ICMP socket: {exc}") from exc


def _set_ttl(sock: socket.socket, params: ProtocolParams, ttl: int) -> None:
    if params.ip_version == 4:
        level, option = socket.IPPROTO_IP, socket.IP_TTL
    else:
        level, option = socket.IPPROTO_IPV6, socket.IPV6_UNICAST_HOPS
    try:
        sock.setsockopt(level, option, ttl)
    except OSError as exc:
        raise SocketError(f"Cannot set TTL {ttl}: {exc}") from exc


def resolve_address(address: str, params: ProtocolParams) -> tuple:
    """Resolve ``address`` to a socket address of the probed family."""
    try:
        infos = socket.getaddrinfo(address, None, params.family)
    except (OSError, UnicodeError) as exc:
        raise ResolutionError(f"Resolve error {address}: {exc}") from exc
    if not infos:
        raise ResolutionError(f"Resolve error {address}: no IPv{params.ip_version} address")
    return infos[0][4]


def _quoted_echo(reply: IcmpPacket, params: ProtocolParams) -> Optional[tuple[int, int]]:
    """Identifier and sequence of the echo request quoted by an ICMP error.

    ``None`` when the quoted datagram is not an ICMP echo request.
    """
    quoted = reply.data
    if params.ip_version == 4:
        if len(quoted) < 20 or quoted[0] >> 4 != 4 or quoted[9] != PROTOCOL_ICMP:
            return None
        header_size = (quoted[0] & 0xF) * 4
        if header_size < 20:
            return None
    else:
        if (
            len(quoted) < IPV6_HEADER_SIZE
            or quoted[0] >> 4 != 6
            or quoted[6] != PROTOCOL_ICMPV6
        ):
            return None
        header_size = IPV6_HEADER_SIZE

    inner = quoted[header_size : header_size + ICMP_HEADER.size]
    try:
        inner_type, _, _, inner_id, inner_seq = ICMP_HEADER.unpack(inner)
    except struct.error:
        return None
    if inner_type != params.echo_request:
        return None
    return inner_id, inner_seq


def _is_unrelated(reply: IcmpPacket, params: ProtocolParams, request: ProbeRequest) -> bool:
    wire_sequence = request.sequence & 0xFFFF
    if reply.type == params.echo_request:
        # requests addressed to us, or our own request looped back
        return True
    if reply.type == params.echo_reply:
        return reply.id != request.identifier or reply.sequence != wire_sequence
    if params.ip_version == 6 and reply.type in ROUTER_DISCOVERY:
        return True
    if reply.type in QUOTING_TYPES[params.ip_version]:
        return _quoted_echo(reply, params) != (request.identifier, wire_sequence)
    return False


def _await_reply(
    sock: socket.socket, params: ProtocolParams, request: ProbeRequest, sent_at: float
) -> tuple[IcmpPacket, float]:
    while True:
        remaining = request.deadline - time.monotonic()
        if remaining <= 0:
            raise ProbeTimeout("Request timed out.")

        sock.settimeout(remaining)
        try:
            pkt, _ = sock.recvfrom(RECV_BUFFER)
        except socket.timeout as exc:
            raise ProbeTimeout("Request timed out.") from exc
        except OSError as exc:
            raise SocketError(f"Receive failed: {exc}") from exc
        rtt = round((time.monotonic() - sent_at) * 1000, RTT_PRECISION)

        if params.ip_version == 4:
            pkt = strip_ipv4_header(pkt)
        reply = decode_message(params.protocol, pkt)

        if _is_unrelated(reply, params, request):
            logger.debug(
                "Discarding ICMP type %d id=%d seq=%d", reply.type, reply.id, reply.sequence
            )
            continue
        return reply, rtt


def _classify(reply: IcmpPacket, params: ProtocolParams, rtt: float) -> Optional[float]:
    if reply.type == params.echo_reply:
        return rtt
    if params.ip_version == 6 and reply.type in NEIGHBOR_DISCOVERY:
        return None
    raise UnexpectedReply(reply.type, reply.code)


def probe(
    address: str,
    ip_version: int,
    ttl: int,
    sequence: int,
    timeout: float,
    *,
    identifier: Optional[int] = None,
    payload: bytes = PAYLOAD,
) -> ProbeOutcome:
    """Send one echo request to ``address`` and wait up to ``timeout`` seconds.

    Every failure of the exchange is reported through the returned
    :class:`ProbeOutcome`; only an unsupported ``ip_version`` raises.
    The raw socket lives for the duration of this call.
    """
    params = protocol_params(ip_version)
    identifier = default_identifier() if identifier is None else identifier
    resolved: Optional[str] = None

    try:
        with closing(_open_socket(params)) as sock:
            _set_ttl(sock, params, ttl)
            sockaddr = resolve_address(address, params)
            resolved = sockaddr[0]

            packet = encode_echo(params, identifier, sequence & 0xFFFF, payload)

            sent_at = time.monotonic()
            try:
                sock.sendto(packet, sockaddr)
            except OSError as exc:
                raise SendError(f"Send to {resolved} failed: {exc}") from exc
            request = ProbeRequest(
                ip_version=ip_version,
                address=resolved,
                sequence=sequence,
                ttl=ttl,
                identifier=identifier,
                payload=payload,
                deadline=sent_at + timeout,
            )

            reply, rtt = _await_reply(sock, params, request, sent_at)
            rtt_value = _classify(reply, params, rtt)
    except ProbeError as exc:
        logger.debug("Probe seq=%d to %s failed: %s", sequence, address, exc)
        return ProbeOutcome(
            success=False,
            rtt=None,
            kind=exc.kind,
            error=str(exc),
            address=resolved,
            sequence=sequence,
            reply_type=getattr(exc, "reply_type", None),
        )

    return ProbeOutcome(
        success=True,
        rtt=rtt_value,
        kind=None,
        error=None,
        address=resolved,
        sequence=sequence,
        reply_type=reply.type,
    )
