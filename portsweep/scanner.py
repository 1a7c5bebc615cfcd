# portsweep/scanner.py
import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, TextIO

from .aggregator import ResultAggregator
from .cancellation import CancellationToken
from .exceptions import UsageError
from .models import ScanJob, ScanReport
from .partitioner import partition_range
from .progress import ProgressMonitor, ScanProgress
from .prober import DEFAULT_TIMEOUT, JobOutcome, PortProber
from .utils import MAX_DURATION, validate_duration, validate_ip

logger = logging.getLogger(__name__)


class Scanner:
    """
    Scans a contiguous port range on one IPv4 host with a fixed pool of workers.

    Each worker owns one contiguous slice of the range. The coordinator waits
    for all of them, draining completions in the order they finish, and
    returns a port-ordered ScanReport.
    """
    def __init__(
        self,
        target: str,
        start_port: int,
        end_port: int,
        workers: int = 10,
        timeout: float = DEFAULT_TIMEOUT,
        progress_sink: Optional[TextIO] = None,
        progress_interval: float = 0.1,
        token: Optional[CancellationToken] = None,
        verbose: bool = False
    ):
        self.target = target
        self.start_port = start_port
        self.end_port = end_port
        self.workers = workers
        self.timeout = timeout
        self.progress_sink = progress_sink
        self.progress_interval = progress_interval
        self.token = token or CancellationToken()
        self.verbose = verbose

        self._validate_inputs()
        # Partitioning also validates the port range and worker count
        self.jobs: List[ScanJob] = partition_range(start_port, end_port, workers)

        if self.verbose:
            logger.setLevel(logging.INFO)

    def _validate_inputs(self):
        if not validate_ip(self.target):
            raise UsageError(f"Invalid target IP: {self.target}. Resolve hostnames before scanning.")
        if not validate_duration(self.timeout):
            raise UsageError(f"Timeout must be a positive number of seconds up to {MAX_DURATION:g} (got {self.timeout!r}).")
        if not validate_duration(self.progress_interval):
            raise UsageError(f"Progress interval must be a positive number of seconds up to {MAX_DURATION:g} "
                             f"(got {self.progress_interval!r}).")

    @property
    def total_ports(self) -> int:
        return self.end_port - self.start_port + 1

    def request_stop(self):
        """Stops the scan after the probes currently in flight."""
        self.token.cancel()

    async def run(self) -> ScanReport:
        """
        Runs the scan and returns the port-ordered report.
        If a stop was requested the report is partial and marked interrupted.
        """
        aggregator = ResultAggregator()
        progress = ScanProgress(self.total_ports)
        prober = PortProber(self.target, aggregator, progress, self.token, timeout=self.timeout)
        monitor = ProgressMonitor(progress, self.token, sink=self.progress_sink, interval=self.progress_interval)

        logger.info(f"Scanning {self.target} ports {self.start_port}-{self.end_port} "
                    f"({self.total_ports} ports) using {len(self.jobs)} workers.")
        started = time.monotonic()
        loop = asyncio.get_running_loop()

        with ThreadPoolExecutor(max_workers=len(self.jobs), thread_name_prefix="portsweep-worker") as pool:
            monitor_task = asyncio.create_task(monitor.run())
            futures = [loop.run_in_executor(pool, prober.scan_job, job) for job in self.jobs]
            try:
                for finished in asyncio.as_completed(futures):
                    outcome: JobOutcome = await finished
                    logger.info(f"Worker {outcome.job.worker_id} finished ports {outcome.job.range}: "
                                f"{outcome.probed} probed, {outcome.unknown} unknown"
                                f"{' (stopped early)' if outcome.cancelled else ''}.")
            except Exception:
                # Let the remaining workers wind down at their next port boundary
                logger.exception("A scan worker failed; stopping the remaining workers.")
                self.token.cancel()
                # Collect the other workers so their errors are not left unretrieved
                await asyncio.gather(*futures, return_exceptions=True)
                raise
            finally:
                monitor.stop()
                await monitor_task

        report = ScanReport(
            host=self.target,
            total_ports=self.total_ports,
            results=aggregator.snapshot(),
            interrupted=self.token.cancelled,
            elapsed=time.monotonic() - started
        )

        if report.interrupted:
            logger.warning(f"Scan of {self.target} interrupted after {len(report)} of {report.total_ports} ports.")
        if report.unknown_count:
            logger.warning(f"{report.unknown_count} port(s) could not be probed (socket creation failed).")
        logger.info(f"Scan of {self.target} finished in {report.elapsed:.2f}s: "
                    f"{len(report.open_ports())} open port(s).")
        return report


def run_scan(
    target: str,
    start_port: int,
    end_port: int,
    workers: int = 10,
    **kwargs
) -> ScanReport:
    """Convenience wrapper running a Scanner to completion from synchronous code."""
    scanner = Scanner(target, start_port, end_port, workers=workers, **kwargs)
    return asyncio.run(scanner.run())
