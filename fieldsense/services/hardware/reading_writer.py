"""
Serialized reading writer.

All persistence jobs run on one worker thread fed by a bounded queue, so
SQLite only ever sees a single writer and the MQTT network loop never
blocks on disk I/O. When the queue is full the job is dropped (delivery is
at-most-once).
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Any, Callable, Dict, Optional

from fieldsense.constants import Timeouts

logger = logging.getLogger(__name__)

Job = Callable[[], None]

_STOP = object()


class ReadingWriter:
    """Single-threaded job queue for database writes."""

    def __init__(
        self,
        queue_size: int = 1024,
        *,
        thread_cleanup: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Args:
            queue_size: Maximum number of pending jobs.
            thread_cleanup: Called on the worker thread before it exits
                (e.g. closing its thread-local database connection).
        """
        self._queue_size = queue_size
        self._queue: Queue = Queue(maxsize=queue_size)
        self._thread_cleanup = thread_cleanup
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self._completed_jobs = 0
        self._failed_jobs = 0
        self._dropped_jobs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._stopped:
                raise RuntimeError("ReadingWriter cannot be restarted after stop()")
            if self.is_running:
                return
            self._thread = threading.Thread(target=self._worker_loop, name="reading-writer", daemon=True)
            self._thread.start()
        logger.info("Reading writer started (queue=%s)", self._queue_size)

    def submit(self, job: Job) -> bool:
        """Queue a job. Returns False when the queue is full or the writer is stopped."""
        with self._lock:
            # Same lock as stop(): an accepted job is always queued ahead of the stop sentinel
            if self._stopped:
                self._dropped_jobs += 1
                logger.warning("Reading writer stopped; job rejected")
                return False
            try:
                self._queue.put_nowait(job)
            except Full:
                self._dropped_jobs += 1
                return False
        return True

    def join(self) -> None:
        """Block until every queued job has been processed."""
        self._queue.join()

    def stop(self, timeout: float = Timeouts.WRITER_STOP_TIMEOUT) -> None:
        """Drain queued jobs, then stop the worker. Idempotent."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            thread = self._thread

        if thread is None:
            # Never started: nothing will consume the queue
            self._discard_pending()
            return

        self._queue.put(_STOP)
        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning("Reading writer did not stop within %.1fs", timeout)
        else:
            logger.info("Reading writer stopped")

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "queue_depth": self._queue.qsize(),
            "queue_size": self._queue_size,
            "completed_jobs": self._completed_jobs,
            "failed_jobs": self._failed_jobs,
            "dropped_jobs": self._dropped_jobs,
        }

    def _worker_loop(self) -> None:
        try:
            while True:
                job = self._queue.get()
                try:
                    if job is _STOP:
                        return
                    job()
                    self._completed_jobs += 1
                except Exception as exc:
                    self._failed_jobs += 1
                    logger.error("Unhandled error in write job: %s", exc, exc_info=True)
                finally:
                    self._queue.task_done()
        finally:
            if self._thread_cleanup is not None:
                self._thread_cleanup()

    def _discard_pending(self) -> None:
        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                break
            self._queue.task_done()
            discarded += 1
        if discarded:
            logger.warning("Discarded %d queued write job(s); writer was never started", discarded)
