"""
Periodic job-retention cleanup.

Runs QueueRegistry.cleanup() on a background thread so that completed jobs
beyond MaxCompletedJobs (and their files, unless KeepFiles is set) are
purged without blocking request handling. What "cleaning" a queue means is
up to the clean_jobs callable supplied by the serving layer.

Thread Safety:
    - The registry lock is only held while the queue list is copied
    - clean_jobs runs on the cleanup thread, one queue at a time

Usage:
    cleanup_service = JobCleanupService(context.registry, clean_jobs, interval_seconds=60)
    cleanup_service.start()
    ...
    cleanup_service.stop()
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from logging_config import get_logger, set_thread_name
from services.queue_registry import CleanJobs, QueueRegistry


# Module logger
logger = get_logger(__name__)


class JobCleanupService:
    """
    Background service calling registry.cleanup() every interval.

    Attributes:
        interval_seconds: Time between cleanup sweeps
        is_running: Whether the background thread is active
        runs: Number of sweeps completed
    """

    def __init__(
        self,
        registry: QueueRegistry,
        clean_jobs: CleanJobs,
        interval_seconds: float = 60.0
    ):
        """
        Initialize cleanup service.

        Args:
            registry: Queue registry to sweep
            clean_jobs: Job-retention callable, called once per queue
            interval_seconds: Seconds between sweeps

        Raises:
            ValueError: If interval_seconds is not positive
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._registry = registry
        self._clean_jobs = clean_jobs
        self._interval = interval_seconds

        # Thread control
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._is_running = False

        self.runs = 0
        self.last_run: Optional[float] = None

        logger.info(f"JobCleanupService initialized (interval: {interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        """Whether the background cleanup thread is active."""
        return self._is_running

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self) -> None:
        """
        Start the background cleanup thread.

        Safe to call multiple times - only starts if not already running.
        """
        if self._is_running:
            logger.warning("JobCleanupService already running")
            return

        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._cleanup_loop,
            name="JobCleanup",
            daemon=True  # Thread will exit when main process exits
        )
        self._is_running = True
        self._thread.start()

        logger.info("Job cleanup thread started")

    def stop(self) -> None:
        """
        Stop the background cleanup thread and wait for it to finish.

        Safe to call multiple times.
        """
        if not self._is_running:
            return

        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

            if self._thread.is_alive():
                logger.warning("Job cleanup thread did not stop cleanly")

        self._is_running = False
        self._thread = None

        logger.info("Job cleanup thread stopped")

    def run_once(self) -> int:
        """
        Run one cleanup sweep in the calling thread.

        Returns:
            Number of queues visited
        """
        visited = self._registry.cleanup(self._clean_jobs)
        self.runs += 1
        self.last_run = time.time()
        return visited

    def _cleanup_loop(self) -> None:
        set_thread_name("JobCleanup")

        while not self._stop_event.wait(timeout=self._interval):
            self.run_once()

        logger.debug("Job cleanup loop exiting")
