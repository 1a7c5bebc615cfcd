import errno
import time

import pytest

from portsweep import prober
from portsweep.aggregator import ResultAggregator
from portsweep.cancellation import CancellationToken
from portsweep.models import PortRange, PortStatus, ScanJob
from portsweep.progress import ScanProgress
from portsweep.prober import PortProber, probe_port


def test_listening_port_is_open(listening_port):
    assert probe_port("127.0.0.1", listening_port) is PortStatus.OPEN


def test_refused_port_is_closed(refused_port):
    assert probe_port("127.0.0.1", refused_port) is PortStatus.CLOSED


def test_timeout_without_writability_is_filtered(fake_socket, monkeypatch):
    created = fake_socket()
    monkeypatch.setattr(prober, "_wait_writable", lambda sock, timeout: False)

    assert probe_port("192.0.2.1", 5000, timeout=0.01) is PortStatus.FILTERED
    assert created[0].closed


@pytest.mark.parametrize("so_error,expected", [
    (0, PortStatus.OPEN),
    (errno.ECONNREFUSED, PortStatus.CLOSED),
    (errno.EHOSTUNREACH, PortStatus.FILTERED),
])
def test_pending_error_after_writable(fake_socket, monkeypatch, so_error, expected):
    fake_socket(so_error=so_error)
    monkeypatch.setattr(prober, "_wait_writable", lambda sock, timeout: True)
    assert probe_port("192.0.2.1", 80) is expected


@pytest.mark.parametrize("code,expected", [
    (0, PortStatus.OPEN),
    (errno.ECONNREFUSED, PortStatus.CLOSED),
    (errno.ENETUNREACH, PortStatus.FILTERED),
])
def test_immediate_connect_outcome(fake_socket, monkeypatch, code, expected):
    created = fake_socket(connect_code=code)

    def must_not_wait(sock, timeout):
        raise AssertionError("readiness wait should be skipped")

    monkeypatch.setattr(prober, "_wait_writable", must_not_wait)
    assert probe_port("192.0.2.1", 80) is expected
    assert created[0].closed


def test_failure_to_read_pending_error_is_filtered(fake_socket, monkeypatch):
    created = fake_socket(getsockopt_error=OSError(errno.EBADF, "bad descriptor"))
    monkeypatch.setattr(prober, "_wait_writable", lambda sock, timeout: True)

    assert probe_port("192.0.2.1", 80) is PortStatus.FILTERED
    assert created[0].closed


def test_failed_readiness_wait_is_filtered(fake_socket, monkeypatch):
    fake_socket()

    def broken_wait(sock, timeout):
        raise ValueError("file descriptor out of range")

    monkeypatch.setattr(prober, "_wait_writable", broken_wait)
    assert probe_port("192.0.2.1", 80) is PortStatus.FILTERED


def test_socket_creation_failure_is_unknown(monkeypatch):
    def exhausted():
        raise OSError(errno.EMFILE, "Too many open files")

    monkeypatch.setattr(prober, "_open_socket", exhausted)
    assert probe_port("127.0.0.1", 80) is PortStatus.UNKNOWN


def _make_prober(token=None):
    aggregator = ResultAggregator()
    token = token or CancellationToken()
    return PortProber("127.0.0.1", aggregator, ScanProgress(10), token), aggregator


def test_scan_job_probes_every_port_in_order(monkeypatch):
    seen = []

    def fake_probe(self, port):
        seen.append(port)
        return PortStatus.CLOSED if port % 2 else PortStatus.OPEN

    monkeypatch.setattr(PortProber, "probe", fake_probe)
    worker, aggregator = _make_prober()

    outcome = worker.scan_job(ScanJob(PortRange(1, 10), worker_id=0))

    assert seen == list(range(1, 11))
    assert outcome.probed == 10 and outcome.unknown == 0 and not outcome.cancelled
    assert worker.progress.scanned == 10
    assert aggregator.snapshot()[2] is PortStatus.OPEN


def test_scan_job_counts_unknown_ports_in_progress(monkeypatch):
    monkeypatch.setattr(PortProber, "probe", lambda self, port: PortStatus.UNKNOWN if port == 3 else PortStatus.CLOSED)
    worker, aggregator = _make_prober()

    outcome = worker.scan_job(ScanJob(PortRange(1, 5), worker_id=0))

    assert outcome.unknown == 1 and outcome.probed == 4
    assert worker.progress.scanned == 5
    assert aggregator.snapshot()[3] is PortStatus.UNKNOWN


def test_scan_job_stops_before_next_port_when_cancelled(monkeypatch):
    token = CancellationToken()

    def fake_probe(self, port):
        if port == 4:
            token.cancel()  # stop requested while port 4 is in flight
        return PortStatus.FILTERED

    monkeypatch.setattr(PortProber, "probe", fake_probe)
    worker, aggregator = _make_prober(token)

    outcome = worker.scan_job(ScanJob(PortRange(1, 10), worker_id=0))

    assert outcome.cancelled
    assert list(aggregator.snapshot()) == [1, 2, 3, 4]
    assert worker.progress.scanned == 4


def test_unresponsive_ports_are_serialized_within_one_worker(fake_socket, monkeypatch):
    fake_socket()

    def silent(sock, timeout):
        time.sleep(timeout)
        return False

    monkeypatch.setattr(prober, "_wait_writable", silent)
    worker, aggregator = _make_prober()
    worker.timeout = 0.1

    started = time.monotonic()
    worker.scan_job(ScanJob(PortRange(5000, 5002), worker_id=0))
    elapsed = time.monotonic() - started

    assert aggregator.snapshot() == {port: PortStatus.FILTERED for port in (5000, 5001, 5002)}
    assert elapsed >= 0.29
