"""Background loop that reclaims expired clips."""

import logging
import threading

from clipshare.registry import ClipRegistry, Clock, utcnow

logger = logging.getLogger(__name__)


class Sweeper:
    """Periodically delete expired clips and their files.

    One daemon thread per instance; :meth:`start` is a no-op if it is
    already running.
    """

    def __init__(
        self,
        registry: ClipRegistry,
        interval: float = 600.0,
        clock: Clock = utcnow,
    ) -> None:
        if interval <= 0:
            raise ValueError("sweep interval must be positive")
        self.registry = registry
        self.interval = interval
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def sweep_once(self) -> int:
        """Run one sweep and return the number of clips removed."""
        now = self.clock()
        removed = 0
        for record in self.registry.enumerate():
            if not record.is_expired(now):
                continue
            try:
                if self.registry.reclaim(record.token, now):
                    removed += 1
            except OSError:
                logger.exception("Failed deleting %s", record.token)
        if removed:
            logger.info("Sweep removed %d expired clip(s)", removed)
        return removed

    def _run(self) -> None:
        logger.info("Clip sweeper started (interval %ss)", self.interval)
        while not self._stop.is_set():
            try:
                self.sweep_once()
            except Exception:
                logger.exception("Sweeper error")
            self._stop.wait(self.interval)
        logger.info("Clip sweeper stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="clip-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
