from ._config import PingConfig
from ._exceptions import (
    DecodeError,
    EncodeError,
    ProbeError,
    ProbeTimeout,
    RawSocketPermissionError,
    ResolutionError,
    SendError,
    SocketError,
    UnexpectedReply,
)
from ._icmp import decode_message, encode_echo
from ._models import ErrorKind, IcmpPacket, ProbeOutcome, ProbeRequest
from ._probe import probe
from ._stats import Statistics, Summary

__all__ = [
    "PingConfig",
    "probe",
    "Statistics",
    "Summary",
    "ErrorKind",
    "IcmpPacket",
    "ProbeOutcome",
    "ProbeRequest",
    "encode_echo",
    "decode_message",
    "ProbeError",
    "SocketError",
    "RawSocketPermissionError",
    "ResolutionError",
    "EncodeError",
    "SendError",
    "ProbeTimeout",
    "DecodeError",
    "UnexpectedReply",
]
