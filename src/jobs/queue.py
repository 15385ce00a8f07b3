"""Bounded-concurrency job queue with self-replenishing workers.

A fixed upper bound of worker threads drains one shared FIFO. The bound
caps simultaneous calls to the board API and the number of raster buffers
held in memory at once; jobs have no ordering requirements between them.

Every worker exit, whether the queue ran dry or the worker crashed, is
followed by an unconditional call to :meth:`JobQueue.try_start_workers`.
Gating that call on a capacity check taken before the decrement can leave
a non-empty queue with no workers at all.
"""

import itertools
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Job:
    """One unit of work: a document to read and where to write the fields."""

    document_ref: str
    destination_ref: str
    enqueued_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class QueueStats:
    """Point-in-time view of the queue."""

    pending: int
    active_workers: int
    completed: int
    failed: int
    peak_workers: int


class JobQueue:
    """FIFO of jobs processed by at most ``max_workers`` threads.

    Duplicate jobs are not deduplicated; enqueueing the same pair twice
    processes it twice, possibly concurrently.

    Args:
        handler: Callable processing one job; raising marks the job failed.
        max_workers: Upper bound on simultaneously running workers.
        inter_job_delay: Seconds a worker waits between two jobs.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        handler: Callable[[Job], None],
        max_workers: int = 2,
        inter_job_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.handler = handler
        self.max_workers = max_workers
        self.inter_job_delay = inter_job_delay
        self._sleep = sleep

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._jobs: deque[Job] = deque()
        self._active = 0
        self._peak = 0
        self._completed = 0
        self._failed = 0
        self._worker_ids = itertools.count(1)

    def enqueue(self, document_ref: str, destination_ref: str) -> Job:
        """Add a job and start workers if there is spare capacity.

        Safe to call concurrently from any thread.
        """
        job = Job(document_ref=str(document_ref), destination_ref=str(destination_ref))
        with self._lock:
            self._jobs.append(job)
            pending = len(self._jobs)
        logger.info("Added item %s to queue. Queue length: %d", job.document_ref, pending)
        self.try_start_workers()
        return job

    def try_start_workers(self) -> int:
        """Start workers up to the bound while jobs are waiting.

        Idempotent and always safe to call.

        Returns:
            Number of workers started by this call.
        """
        started: list[int] = []
        with self._lock:
            while self._active < self.max_workers and len(self._jobs) > len(started):
                self._active += 1
                self._peak = max(self._peak, self._active)
                started.append(next(self._worker_ids))
            active, pending = self._active, len(self._jobs)

        for index, worker_id in enumerate(started):
            logger.info(
                "Starting worker #%d (%d active, %d items in queue)",
                worker_id,
                active,
                pending,
            )
            worker = threading.Thread(
                target=self._run_worker,
                args=(worker_id,),
                name=f"job-worker-{worker_id}",
                daemon=True,
            )
            try:
                worker.start()
            except RuntimeError:
                # Release the slots reserved for this worker and the ones after it.
                unstarted = len(started) - index
                with self._lock:
                    self._active -= unstarted
                logger.exception(
                    "Could not start worker #%d, released %d worker slot(s)",
                    worker_id,
                    unstarted,
                )
                return index
        return len(started)

    def on_worker_exit(self, worker_id: int) -> None:
        """Retire a worker and replenish the pool from the backlog."""
        with self._lock:
            self._active -= 1
            active, pending = self._active, len(self._jobs)
            if active == 0 and pending == 0:
                self._idle.notify_all()
        logger.info(
            "Worker #%d finished (%d still active, %d items in queue)",
            worker_id,
            active,
            pending,
        )
        self.try_start_workers()

    def stats(self) -> QueueStats:
        with self._lock:
            return QueueStats(
                pending=len(self._jobs),
                active_workers=self._active,
                completed=self._completed,
                failed=self._failed,
                peak_workers=self._peak,
            )

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until the queue is empty and no worker is running.

        Returns:
            ``True`` if the queue went idle, ``False`` on timeout.
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: self._active == 0 and not self._jobs, timeout=timeout
            )

    def _dequeue(self) -> Job | None:
        with self._lock:
            return self._jobs.popleft() if self._jobs else None

    def _run_worker(self, worker_id: int) -> None:
        try:
            while True:
                job = self._dequeue()
                if job is None:
                    break
                self._process(worker_id, job)
                self._sleep(self.inter_job_delay)
        except Exception:
            logger.exception("Worker #%d crashed", worker_id)
        finally:
            self.on_worker_exit(worker_id)

    def _process(self, worker_id: int, job: Job) -> None:
        logger.info("Processing item %s (worker #%d)", job.document_ref, worker_id)
        try:
            self.handler(job)
        except Exception as exc:
            with self._lock:
                self._failed += 1
            logger.error("Failed to process item %s: %s", job.document_ref, exc)
            return
        with self._lock:
            self._completed += 1
        logger.info("Completed item %s", job.document_ref)
