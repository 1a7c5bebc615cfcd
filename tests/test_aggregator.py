import random
import threading

from portsweep.aggregator import ResultAggregator
from portsweep.models import PortStatus, ProbeResult


def test_snapshot_is_sorted_regardless_of_arrival_order():
    results = [ProbeResult(port, status) for port, status in [
        (443, PortStatus.OPEN), (22, PortStatus.CLOSED), (80, PortStatus.FILTERED), (8080, PortStatus.OPEN),
    ]]
    expected = None
    for _ in range(5):
        shuffled = results[:]
        random.shuffle(shuffled)
        aggregator = ResultAggregator()
        aggregator.extend(shuffled)
        snapshot = aggregator.snapshot()
        assert list(snapshot) == [22, 80, 443, 8080]
        if expected is None:
            expected = snapshot
        assert snapshot == expected


def test_last_write_wins_for_duplicate_port():
    aggregator = ResultAggregator()
    aggregator.add(ProbeResult(80, PortStatus.FILTERED))
    aggregator.add(ProbeResult(80, PortStatus.OPEN))
    assert aggregator.snapshot() == {80: PortStatus.OPEN}
    assert len(aggregator) == 1


def test_concurrent_producers_keep_every_port():
    aggregator = ResultAggregator()

    def produce(start):
        for port in range(start, start + 500):
            aggregator.add(ProbeResult(port, PortStatus.CLOSED))

    threads = [threading.Thread(target=produce, args=(1 + i * 500,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = aggregator.snapshot()
    assert list(snapshot) == list(range(1, 4001))
