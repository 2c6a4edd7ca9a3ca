from dataclasses import dataclass
from typing import Iterable, Tuple

from .prober import ProbeOutcome


@dataclass(frozen=True)
class ScanResult:
    """Final, ordered view of a finished (or cut short) scan"""
    host: str
    open_ports: Tuple[ProbeOutcome, ...]
    total_ports: int
    completed: int
    duration_ms: int

    @property
    def not_open_count(self) -> int:
        return self.completed - len(self.open_ports)

    @property
    def is_complete(self) -> bool:
        return self.completed == self.total_ports


class ResultCollector:
    """
    Turns the unordered outcomes of a scan into a ScanResult.
    Runs once, after every worker has joined, so it needs no locking.
    """

    @staticmethod
    def collect(host: str, outcomes: Iterable[ProbeOutcome], total_ports: int, duration_ms: int) -> ScanResult:
        completed = 0
        by_port = {}
        for outcome in outcomes:
            completed += 1
            if outcome.is_open:
                by_port.setdefault(outcome.port, outcome)

        return ScanResult(
            host=host,
            open_ports=tuple(by_port[p] for p in sorted(by_port)),
            total_ports=total_ports,
            completed=completed,
            duration_ms=duration_ms,
        )
