"""
Named periodic jobs, each ticking on its own daemon thread.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List

from django.db import close_old_connections

logger = logging.getLogger(__name__)


@dataclass
class PeriodicJob:
    name: str
    interval_seconds: float
    func: Callable[[], object]


class JobScheduler:
    def __init__(self, jobs: List[PeriodicJob] = None):
        self._jobs: Dict[str, PeriodicJob] = {}
        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()
        for job in jobs or []:
            self.register(job)

    @property
    def jobs(self) -> List[PeriodicJob]:
        return list(self._jobs.values())

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def register(self, job: PeriodicJob) -> None:
        if job.interval_seconds <= 0:
            raise ValueError(f"Job {job.name} needs a positive interval")
        if job.name in self._jobs:
            raise ValueError(f"Job {job.name} is already registered")
        self._jobs[job.name] = job

    def run_job(self, job: PeriodicJob):
        """Run one tick of a job. Failures are logged; the job keeps its schedule."""
        try:
            result = job.func()
            logger.debug(f"Job {job.name} finished: {result}")
            return result
        except Exception as e:
            logger.error(f"Job {job.name} failed: {e}", exc_info=True)
            return None

    def run_pending_once(self) -> Dict[str, object]:
        return {job.name: self.run_job(job) for job in self.jobs}

    def start(self) -> None:
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self._threads = []
        for job in self.jobs:
            thread = threading.Thread(target=self._loop, args=(job,), name=f"job-{job.name}", daemon=True)
            thread.start()
            self._threads.append(thread)
            logger.info(f"Scheduled job {job.name} every {job.interval_seconds}s")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("Scheduler stopped")

    def wait(self) -> None:
        """Block until stop() is called from another thread."""
        self._stop_event.wait()

    def _loop(self, job: PeriodicJob) -> None:
        # First tick runs immediately
        while not self._stop_event.is_set():
            # Worker threads hold their own connections; drop stale ones around each tick
            close_old_connections()
            self.run_job(job)
            close_old_connections()
            if self._stop_event.wait(job.interval_seconds):
                break
