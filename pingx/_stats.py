"""Running loss and jitter statistics for a ping session."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from rich import box
from rich.table import Table

from ._models import ProbeOutcome


def _format_ms(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    return f"{value:.2f} ms"


@dataclass(frozen=True)
class Summary:
    sent: int
    received: int
    lost: int
    loss: float
    jitter: float
    rtt_min: Optional[float]
    rtt_avg: Optional[float]
    rtt_max: Optional[float]

    def __str__(self) -> str:
        lines = [
            f"  Packets: Sent = {self.sent}, Received = {self.received}, "
            f"Lost = {self.lost} ({self.loss:.2f}% loss)",
            f"  Jitter = {self.jitter:.2f} ms",
        ]
        if self.rtt_min is not None:
            lines.append(
                f"  Minimum = {_format_ms(self.rtt_min)}, "
                f"Average = {_format_ms(self.rtt_avg)}, "
                f"Maximum = {_format_ms(self.rtt_max)}"
            )
        else:
            lines.append("  No round trip time data available.")
        return "\n".join(lines) + "\n"

    def __rich__(self) -> Table:
        table = Table(title="Ping statistics", box=box.SQUARE)
        table.add_column("Sent", justify="right", style="yellow")
        table.add_column("Recv", justify="right", style="yellow")
        table.add_column("Lost", justify="right", style="red")
        table.add_column("Loss %", justify="right", style="red")
        table.add_column("Jitter", justify="right")
        table.add_column("Min", justify="right")
        table.add_column("Avg", justify="right")
        table.add_column("Max", justify="right")
        table.add_row(
            str(self.sent),
            str(self.received),
            str(self.lost),
            f"{self.loss:.2f}",
            _format_ms(self.jitter),
            _format_ms(self.rtt_min),
            _format_ms(self.rtt_avg),
            _format_ms(self.rtt_max),
        )
        return table


class Statistics:
    """Cumulative probe counters and the RTT samples in send order.

    Only the probing loop mutates an instance; :meth:`summary` may be called
    from elsewhere and always sees a consistent state.
    """

    def __init__(self) -> None:
        self.sent = 0
        self.lost = 0
        self.rtts: list[float] = []
        self.loss = 0.0
        self._lock = threading.Lock()

    def _update_loss(self) -> None:
        self.loss = (self.lost / self.sent) * 100 if self.sent else 0.0

    def record_success(self, rtt: Optional[float]) -> None:
        with self._lock:
            self.sent += 1
            if rtt is not None:
                self.rtts.append(rtt)
            self._update_loss()

    def record_failure(self) -> None:
        with self._lock:
            self.sent += 1
            self.lost += 1
            self._update_loss()

    def record(self, outcome: ProbeOutcome) -> None:
        if outcome.success:
            self.record_success(outcome.rtt)
        else:
            self.record_failure()

    @staticmethod
    def _jitter(rtts: list[float]) -> float:
        if len(rtts) < 2:
            return 0.0
        deltas = [abs(a - b) for a, b in zip(rtts, rtts[1:])]
        return sum(deltas) / len(deltas)

    def jitter(self) -> float:
        """Mean absolute difference between consecutive RTTs, in ms."""
        with self._lock:
            return self._jitter(self.rtts)

    def summary(self) -> Summary:
        with self._lock:
            rtts = list(self.rtts)
            sent, lost, loss = self.sent, self.lost, self.loss

        return Summary(
            sent=sent,
            received=sent - lost,
            lost=lost,
            loss=loss,
            jitter=self._jitter(rtts),
            rtt_min=min(rtts) if rtts else None,
            rtt_avg=(sum(rtts) / len(rtts)) if rtts else None,
            rtt_max=max(rtts) if rtts else None,
        )
