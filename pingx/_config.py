from __future__ import annotations

import argparse
from dataclasses import dataclass

from ._icmp import logger

DEFAULT_ADDRESS = "cloudflare.com"
DEFAULT_COUNT = -1
DEFAULT_TTL = 64
MAX_TTL = 255
DEFAULT_INTERVAL = 1.0
DEFAULT_TIMEOUT = 3.0


@dataclass(frozen=True)
class PingConfig:
    address: str = DEFAULT_ADDRESS
    ip_version: int = 4
    count: int = DEFAULT_COUNT  # -1 probes until interrupted
    ttl: int = DEFAULT_TTL
    interval: float = DEFAULT_INTERVAL
    timeout: float = DEFAULT_TIMEOUT

    @property
    def unbounded(self) -> bool:
        return self.count == -1

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PingConfig":
        """Build a config from parsed CLI arguments, falling back on defaults."""
        if not args.address:
            logger.info("No IP/hostname specified. Defaulting to %s", DEFAULT_ADDRESS)
            address = DEFAULT_ADDRESS
        else:
            address = args.address[0]

        count = args.count
        if count < -1:
            logger.warning("Invalid count %d, probing until interrupted", count)
            count = DEFAULT_COUNT

        ttl = args.ttl
        if ttl < 0 or ttl > MAX_TTL:
            logger.warning("Invalid TTL %d, using %d", ttl, DEFAULT_TTL)
            ttl = DEFAULT_TTL

        interval = args.interval
        if interval < 0:
            logger.warning("Invalid interval %s, using %s", interval, DEFAULT_INTERVAL)
            interval = DEFAULT_INTERVAL

        timeout = args.timeout
        if timeout <= 0:
            logger.warning("Invalid timeout %s, using %s", timeout, DEFAULT_TIMEOUT)
            timeout = DEFAULT_TIMEOUT

        return cls(
            address=address,
            ip_version=args.ip_version,
            count=count,
            ttl=ttl,
            interval=interval,
            timeout=timeout,
        )
