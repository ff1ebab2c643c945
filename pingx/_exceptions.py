"""Errors raised while performing a single echo probe."""

from __future__ import annotations

from typing import Optional

from ._models import ErrorKind


class ProbeError(Exception):
    kind: ErrorKind


class SocketError(ProbeError):
    """Raised when the raw ICMP socket cannot be opened or configured."""

    kind = ErrorKind.SOCKET


class RawSocketPermissionError(SocketError, PermissionError):
    """Raised when raw socket creation fails due to missing privileges."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or "Raw socket requires elevated privileges. Use sudo or grant "
            "CAP_NET_RAW to the Python interpreter."
        )


class ResolutionError(ProbeError):
    kind = ErrorKind.RESOLUTION


class EncodeError(ProbeError):
    kind = ErrorKind.ENCODE


class SendError(ProbeError):
    kind = ErrorKind.SEND


class ProbeTimeout(ProbeError):
    kind = ErrorKind.TIMEOUT


class DecodeError(ProbeError):
    kind = ErrorKind.DECODE


class UnexpectedReply(ProbeError):
    """A well formed reply that does not answer the echo request."""

    kind = ErrorKind.UNEXPECTED_REPLY

    def __init__(self, reply_type: int, reply_code: int = 0) -> None:
        super().__init__(
            f"Unexpected ICMP reply type {reply_type} code {reply_code}"
        )
        self.reply_type = reply_type
        self.reply_code = reply_code
