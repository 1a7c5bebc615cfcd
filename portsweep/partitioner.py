# portsweep/partitioner.py
import logging
from typing import List

from .exceptions import UsageError
from .models import PortRange, ScanJob

logger = logging.getLogger(__name__)


def partition_range(start: int, end: int, num_workers: int) -> List[ScanJob]:
    """
    Splits [start, end] into contiguous, non-overlapping jobs, one per worker.

    Args:
        start: First port of the range (inclusive).
        end: Last port of the range (inclusive).
        num_workers: Requested number of workers. Clamped to the number of
                     ports so that no job is empty.

    Returns:
        List[ScanJob]: Jobs in ascending port order. Sizes differ by at most one,
        the first `total % workers` jobs carrying the extra port.

    Raises:
        UsageError: If the range is invalid or num_workers <= 0.
    """
    if num_workers <= 0:
        raise UsageError(f"Number of workers must be positive (got {num_workers}).")
    full_range = PortRange(start, end)

    total_ports = full_range.size
    workers = min(num_workers, total_ports)
    if workers < num_workers:
        logger.debug(f"Clamping {num_workers} workers to {workers} (one per port).")

    base_size, extra = divmod(total_ports, workers)
    jobs: List[ScanJob] = []
    cursor = full_range.start
    for worker_id in range(workers):
        size = base_size + (1 if worker_id < extra else 0)
        jobs.append(ScanJob(range=PortRange(cursor, cursor + size - 1), worker_id=worker_id))
        cursor += size

    return jobs
