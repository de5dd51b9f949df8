"""
=============================================================================
WORKER POOL (OPT-IN CONCURRENT MODE)
=============================================================================

By default snooze handles one connection at a time: while a client is
being snoozed, nobody else is served. That is the point. A test that asks
for /snooze/5 knows exactly when its response starts and ends, with no
other connection competing.

Some users want several snoozing clients at once. `--workers N` hands
accepted connections to a fixed pool of N threads instead. Per-connection
behavior (reading, routing, delay, response, half-close, log entry) is
unchanged.

=============================================================================
POOL ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit(conn)──►  ┌──────────────┐                    │
    │                                  │  task queue  │                    │
    │                                  └──────┬───────┘                    │
    │                        ┌────────────────┼────────────────┐           │
    │                        ▼                ▼                ▼           │
    │                   ┌─────────┐      ┌─────────┐      ┌─────────┐      │
    │                   │Worker-0 │      │Worker-1 │      │Worker-N │      │
    │                   └─────────┘      └─────────┘      └─────────┘      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Shutdown uses the "poison pill" pattern: one None per worker is queued
after the real tasks, and a worker that pulls None exits.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states."""
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        submitted_at: Time the task was queued (for queue-wait logging).
    """
    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.monotonic)


class Worker(threading.Thread):
    """
    Worker thread pulling tasks until it receives a poison pill.

    A failing task is logged and counted; it never kills the worker.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        # daemon=True: a stuck worker must not keep the process alive
        # once shutdown has given up waiting for it
        super().__init__(name=f"snooze-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break  # Poison pill
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        waited = time.monotonic() - task.submitted_at
        if waited > 1.0:
            logger.debug(f"Worker {self.worker_id} picked up task after {waited:.2f}s in queue")

        try:
            task.func(*task.args)
            self.tasks_completed += 1
        except Exception as e:
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool.

    Usage:
        pool = ThreadPool(workers=4)
        pool.start()
        pool.submit(handle_connection, conn)
        ...
        finished = pool.shutdown(timeout=30.0)
    """

    def __init__(self, workers: int = 4):
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self.workers = workers

        # Unbounded: the accept loop never blocks on a full
        # queue, connections simply wait their turn
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._workers: list = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self):
        """Start the worker threads. Idempotent."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting worker pool with {self.workers} threads")
            for worker_id in range(self.workers):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True

    def submit(self, func: Callable[..., Any], *args: Any) -> None:
        """
        Queue func(*args) for execution on a worker.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutting_down:
            raise RuntimeError("Thread pool is shutting down")

        self._task_queue.put(Task(func=func, args=args))

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Let queued tasks finish, then stop the workers.

        ┌─────────────────────────────────────────────────────────────────┐
        │   1. Refuse new tasks                                            │
        │   2. Queue one poison pill per worker (behind the real tasks)    │
        │   3. Join workers, sharing one deadline                          │
        └─────────────────────────────────────────────────────────────────┘

        Calling it again after a timeout only waits again; the pills are
        queued once.

        Args:
            timeout: Maximum seconds to wait in total. None waits forever.

        Returns:
            True if every worker exited in time, False otherwise.
        """
        if not self._started:
            return True

        if not self._shutting_down:
            logger.info("Shutting down worker pool...")
            self._shutting_down = True
            for _ in self._workers:
                self._task_queue.put(None)

        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in self._workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)

        finished = not any(worker.is_alive() for worker in self._workers)
        if finished:
            logger.info("Worker pool shutdown complete")
        else:
            logger.warning("Worker pool did not finish within the shutdown timeout")
        return finished

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queue_size(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
