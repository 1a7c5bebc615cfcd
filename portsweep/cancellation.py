# portsweep/cancellation.py
import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Write-once stop signal shared by the workers and the progress monitor.

    Workers check it before starting each new port; a probe already in
    flight is never interrupted.
    """
    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        """Requests a stop. Calling it more than once has no further effect."""
        if self._event.is_set():
            return
        self._event.set()
        logger.debug("Cancellation requested.")

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)
