# portsweep/progress.py
import asyncio
import logging
import threading
from typing import Optional, TextIO

from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


class ScanProgress:
    """Scanned/total counter shared by all workers. `scanned` only ever grows."""

    def __init__(self, total: int):
        self.total = total
        self._scanned = 0
        self._lock = threading.Lock()

    def advance(self, count: int = 1):
        with self._lock:
            self._scanned += count

    @property
    def scanned(self) -> int:
        with self._lock:
            return self._scanned

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, 100 * self.scanned // self.total)

    @property
    def done(self) -> bool:
        return self.scanned >= self.total


class ProgressMonitor:
    """
    Periodically samples a ScanProgress and writes a line whenever the
    completed percentage changes.

    Args:
        progress: Counter updated by the workers.
        token: Cancellation token; the monitor stops once it is set.
        sink: Text stream to write progress lines to. If None, progress
              is only logged at DEBUG level.
        interval: Seconds between samples.
    """
    def __init__(
        self,
        progress: ScanProgress,
        token: CancellationToken,
        sink: Optional[TextIO] = None,
        interval: float = 0.1
    ):
        self.progress = progress
        self.token = token
        self.sink = sink
        self.interval = interval
        self._stopped = False
        self._last_percent: Optional[int] = None

    def stop(self):
        """Asks the monitor loop to exit at its next sample."""
        self._stopped = True

    def _emit(self, line: str):
        if self.sink is None:
            logger.debug(line)
            return
        self.sink.write(line + "\n")
        self.sink.flush()

    def sample(self) -> bool:
        """Emits a progress line if the percentage changed. Returns True if a line was written."""
        percent = self.progress.percent
        if percent == self._last_percent:
            return False
        self._last_percent = percent
        self._emit(f"Progress: {percent}% ({self.progress.scanned}/{self.progress.total})")
        return True

    async def run(self):
        while not (self._stopped or self.progress.done or self.token.cancelled):
            self.sample()
            await asyncio.sleep(self.interval)

        scanned, total = self.progress.scanned, self.progress.total
        if scanned >= total:
            if self._last_percent != 100:
                self._emit(f"Progress: 100% ({total}/{total})")
        else:
            self._emit(f"Progress: {self.progress.percent}% ({scanned}/{total}) interrupted")
