"""Command line entry point and probing loop for pingx."""

from __future__ import annotations

import argparse
import signal
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from rich.markup import escape

from ._config import (
    DEFAULT_COUNT,
    DEFAULT_INTERVAL,
    DEFAULT_TIMEOUT,
    DEFAULT_TTL,
    PingConfig,
)
from ._icmp import console, logger, setup_logging
from ._models import ProbeOutcome
from ._probe import probe
from ._stats import Statistics, Summary

TERMINATION_SIGNALS = {signal.SIGINT, signal.SIGTERM}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pingx",
        description="Measure round trip time, loss and jitter to a host with ICMP echo.",
    )
    family = parser.add_mutually_exclusive_group()
    family.add_argument(
        "-4", dest="ip_version", action="store_const", const=4, help="Use IPv4 (default)"
    )
    family.add_argument("-6", dest="ip_version", action="store_const", const=6, help="Use IPv6")
    parser.set_defaults(ip_version=4)
    parser.add_argument(
        "-c",
        "--count",
        type=int,
        default=DEFAULT_COUNT,
        help="Number of echo requests to send, -1 for no limit",
    )
    parser.add_argument(
        "-t", "--ttl", type=int, default=DEFAULT_TTL, help="Outgoing TTL / hop limit"
    )
    parser.add_argument(
        "-i",
        "--interval",
        type=float,
        default=DEFAULT_INTERVAL,
        help="Seconds to wait between requests",
    )
    parser.add_argument(
        "-W",
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Seconds to wait for each reply",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("address", nargs="*", help="Hostname or IP address to ping")
    return parser


@contextmanager
def termination_watcher(stop: threading.Event) -> Iterator[threading.Event]:
    """Set ``stop`` when SIGINT or SIGTERM is received.

    The signals are blocked in the calling thread and consumed by a dedicated
    thread with :func:`signal.sigwait`, so the probing loop is never
    interrupted mid-probe and only has to check ``stop``.
    """
    done = threading.Event()

    def _wait() -> None:
        while True:
            signum = signal.sigwait(TERMINATION_SIGNALS)
            if done.is_set():
                return
            logger.debug("Received %s, finishing", signal.Signals(signum).name)
            stop.set()

    previous = signal.pthread_sigmask(signal.SIG_BLOCK, TERMINATION_SIGNALS)
    watcher = threading.Thread(target=_wait, name="pingx-signals", daemon=True)
    watcher.start()
    try:
        yield stop
    finally:
        done.set()
        signal.pthread_kill(watcher.ident, signal.SIGTERM)
        watcher.join()
        signal.pthread_sigmask(signal.SIG_SETMASK, previous)


def report(outcome: ProbeOutcome, stats: Statistics, config: PingConfig) -> None:
    address = outcome.address or config.address
    if outcome.success:
        if outcome.rtt is not None:
            rtt = f"{outcome.rtt:.2f} ms"
        else:
            rtt = f"n/a (ICMP type {outcome.reply_type})"
    else:
        logger.error("ERROR: %s", escape(outcome.error or "unknown error"))
        rtt = outcome.kind.value if outcome.kind else "error"
    logger.info(
        "Seq: %d\t\tPinging: %s\t\tRTT: %s\t\tLoss: %.2f%%",
        outcome.sequence,
        escape(address),
        rtt,
        stats.loss,
    )


def run(
    config: PingConfig,
    *,
    stats: Optional[Statistics] = None,
    stop: Optional[threading.Event] = None,
) -> Summary:
    """Probe ``config.address`` until the count is exhausted or ``stop`` is set."""
    stats = stats if stats is not None else Statistics()
    stop = stop if stop is not None else threading.Event()

    logger.info(
        "PING %s (IPv%d, ttl=%d, timeout=%.1fs)",
        escape(config.address),
        config.ip_version,
        config.ttl,
        config.timeout,
    )
    while not stop.is_set():
        if not config.unbounded and stats.sent >= config.count:
            break
        outcome = probe(
            config.address,
            config.ip_version,
            config.ttl,
            stats.sent,
            config.timeout,
        )
        stats.record(outcome)
        report(outcome, stats, config)

        if not config.unbounded and stats.sent >= config.count:
            break
        stop.wait(config.interval)

    summary = stats.summary()
    console.print(summary)
    return summary


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if len(args.address) > 1:
        logger.error("Please enter only one IP/hostname as a positional argument")
        return 1

    config = PingConfig.from_args(args)
    stop = threading.Event()
    with termination_watcher(stop):
        run(config, stop=stop)
    return 0
