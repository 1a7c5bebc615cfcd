# portsweep/prober.py
import errno
import logging
import selectors
import socket
from dataclasses import dataclass

from .aggregator import ResultAggregator
from .cancellation import CancellationToken
from .models import PortStatus, ProbeResult, ScanJob
from .progress import ScanProgress

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1.0

# connect() on a non-blocking socket reports one of these while the handshake is pending
_IN_PROGRESS = {errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY}
if hasattr(errno, "WSAEWOULDBLOCK"):
    _IN_PROGRESS.add(errno.WSAEWOULDBLOCK)


def _classify_error(code: int) -> PortStatus:
    if code == 0:
        return PortStatus.OPEN
    if code == errno.ECONNREFUSED:
        return PortStatus.CLOSED
    return PortStatus.FILTERED


def _open_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_STREAM)


def _wait_writable(sock: socket.socket, timeout: float) -> bool:
    """Blocks until the socket is writable or the timeout expires."""
    with selectors.DefaultSelector() as selector:
        selector.register(sock, selectors.EVENT_WRITE)
        return bool(selector.select(timeout))


def probe_port(target_ip: str, port: int, timeout: float = DEFAULT_TIMEOUT) -> PortStatus:
    """
    Performs one non-blocking TCP connect attempt against a target port.
    Returns OPEN, CLOSED or FILTERED; UNKNOWN if no socket could be created.
    """
    try:
        sock = _open_socket()
    except OSError as e:
        # Usually descriptor exhaustion
        logger.warning(f"Could not create socket for {target_ip}:{port}: {e}")
        return PortStatus.UNKNOWN

    with sock:
        sock.setblocking(False)
        try:
            code = sock.connect_ex((target_ip, port))
        except OSError as e:
            logger.debug(f"Connect to {target_ip}:{port} raised {e} (filtered).")
            return PortStatus.FILTERED

        if code not in _IN_PROGRESS:
            status = _classify_error(code)
            logger.debug(f"Connect to {target_ip}:{port} completed immediately with code {code} ({status.value}).")
            return status

        try:
            ready = _wait_writable(sock, timeout)
        except (OSError, ValueError) as e:
            logger.debug(f"Readiness wait on {target_ip}:{port} failed: {e} (filtered).")
            return PortStatus.FILTERED

        if not ready:
            logger.debug(f"Connect to {target_ip}:{port} timed out after {timeout}s (filtered).")
            return PortStatus.FILTERED

        try:
            code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as e:
            logger.debug(f"Could not read socket error for {target_ip}:{port}: {e} (filtered).")
            return PortStatus.FILTERED

        status = _classify_error(code)
        logger.debug(f"Connect to {target_ip}:{port} finished with code {code} ({status.value}).")
        return status


@dataclass(frozen=True)
class JobOutcome:
    """What one worker did with its job."""
    job: ScanJob
    probed: int
    unknown: int
    cancelled: bool


class PortProber:
    """
    Scans ScanJobs against a single target, pushing each result into the
    shared aggregator and advancing the shared progress counter.
    """
    def __init__(
        self,
        target_ip: str,
        aggregator: ResultAggregator,
        progress: ScanProgress,
        token: CancellationToken,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.target_ip = target_ip
        self.aggregator = aggregator
        self.progress = progress
        self.token = token
        self.timeout = timeout

    def probe(self, port: int) -> PortStatus:
        return probe_port(self.target_ip, port, timeout=self.timeout)

    def scan_job(self, job: ScanJob) -> JobOutcome:
        """Probes every port of the job in ascending order until done or cancelled."""
        probed = unknown = 0
        cancelled = False
        for port in job.range.ports():
            if self.token.cancelled:
                cancelled = True
                logger.debug(f"Worker {job.worker_id} stopping before port {port} (cancelled).")
                break

            status = self.probe(port)
            self.aggregator.add(ProbeResult(port=port, status=status))
            self.progress.advance()

            if status is PortStatus.UNKNOWN:
                unknown += 1
            else:
                probed += 1

        return JobOutcome(job=job, probed=probed, unknown=unknown, cancelled=cancelled)
