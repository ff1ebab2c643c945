from __future__ import annotations

import enum
import socket
from dataclasses import dataclass
from typing import Optional


class ErrorKind(str, enum.Enum):
    SOCKET = "socket"
    RESOLUTION = "resolution"
    ENCODE = "encode"
    SEND = "send"
    TIMEOUT = "timeout"
    DECODE = "decode"
    UNEXPECTED_REPLY = "unexpected-reply"


@dataclass(frozen=True)
class ProtocolParams:
    """Per IP version constants used to send and interpret echo messages."""

    ip_version: int
    family: socket.AddressFamily
    protocol: int
    echo_request: int
    echo_reply: int


@dataclass
class IcmpPacket:
    type: int
    code: int
    checksum: int
    id: int
    sequence: int
    data: bytes


@dataclass(frozen=True)
class ProbeRequest:
    ip_version: int
    address: str
    sequence: int
    ttl: int
    identifier: int
    payload: bytes
    deadline: float


@dataclass
class ProbeOutcome:
    success: bool
    rtt: Optional[float]
    kind: Optional[ErrorKind]
    error: Optional[str]
    address: Optional[str]
    sequence: int
    reply_type: Optional[int] = None

    def __str__(self) -> str:
        if not self.success:
            return f"Error: {self.error}"
        if self.rtt is None:
            return f"Reply from {self.address} (type={self.reply_type}, seq={self.sequence})"
        return f"Reply from {self.address}: time={self.rtt:.2f} ms (seq={self.sequence})"

    def __rich__(self) -> str:  # pragma: no cover - rich display helper
        return self.__str__()
