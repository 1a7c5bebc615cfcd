# portsweep/aggregator.py
import threading
from typing import Dict, Iterable

from .models import PortStatus, ProbeResult


class ResultAggregator:
    """Thread-safe collection of per-port results from any number of workers."""

    def __init__(self):
        self._results: Dict[int, PortStatus] = {}
        self._lock = threading.Lock()

    def add(self, result: ProbeResult):
        # Last write wins if a port is ever reported twice
        with self._lock:
            self._results[result.port] = result.status

    def extend(self, results: Iterable[ProbeResult]):
        for result in results:
            self.add(result)

    def snapshot(self) -> Dict[int, PortStatus]:
        """
        Returns the collected results sorted ascending by port.
        Only call once every producer has finished.
        """
        with self._lock:
            return dict(sorted(self._results.items()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
