# portsweep/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Tuple, Any

from .exceptions import UsageError

MIN_PORT = 1
MAX_PORT = 65535


class PortStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FILTERED = "filtered"
    UNKNOWN = "unknown"  # socket could not be created, port was never probed


@dataclass(frozen=True)
class PortRange:
    start: int
    end: int

    def __post_init__(self):
        if not (MIN_PORT <= self.start <= MAX_PORT and MIN_PORT <= self.end <= MAX_PORT):
            raise UsageError(f"Ports must be between {MIN_PORT} and {MAX_PORT} (got {self.start}-{self.end}).")
        if self.start > self.end:
            raise UsageError(f"Start port {self.start} must be less than or equal to end port {self.end}.")

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def ports(self) -> Iterator[int]:
        return iter(range(self.start, self.end + 1))

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class ProbeResult:
    port: int
    status: PortStatus


@dataclass(frozen=True)
class ScanJob:
    """One contiguous slice of the port range, owned by exactly one worker."""
    range: PortRange
    worker_id: int


@dataclass
class ScanReport:
    """
    Final, port-ordered outcome of a scan.

    `results` is kept in ascending port order. When `interrupted` is set the
    report only covers the ports that were fully probed before the stop.
    """
    host: str
    total_ports: int
    results: Dict[int, PortStatus] = field(default_factory=dict)
    interrupted: bool = False
    elapsed: float = 0.0

    def __post_init__(self):
        self.results = dict(sorted(self.results.items()))

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[Tuple[int, PortStatus]]:
        return iter(self.results.items())

    @property
    def statuses(self) -> List[Tuple[int, PortStatus]]:
        return list(self.results.items())

    @property
    def probed_count(self) -> int:
        return sum(1 for status in self.results.values() if status is not PortStatus.UNKNOWN)

    @property
    def unknown_count(self) -> int:
        return sum(1 for status in self.results.values() if status is PortStatus.UNKNOWN)

    @property
    def is_partial(self) -> bool:
        return self.interrupted

    def open_ports(self) -> List[int]:
        return [port for port, status in self.results.items() if status is PortStatus.OPEN]

    def filter(self, open_only: bool = False) -> List[Tuple[int, PortStatus]]:
        """Returns the ordered (port, status) pairs, keeping only open ports if requested."""
        if not open_only:
            return self.statuses
        return [(port, status) for port, status in self.results.items() if status is PortStatus.OPEN]

    def to_dict(self, open_only: bool = False) -> Dict[str, Any]:
        return {
            "host": self.host,
            "total_ports": self.total_ports,
            "probed_ports": self.probed_count,
            "unknown_ports": self.unknown_count,
            "interrupted": self.interrupted,
            "elapsed": round(self.elapsed, 3),
            "results": [{"port": port, "status": status.value} for port, status in self.filter(open_only)],
        }
