"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Connections are served by a fixed-but-growable set of worker threads
pulling from a bounded queue:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit()──► [ task queue (queue_size) ]              │
    │                                      │                               │
    │                         ┌────────────┼────────────┐                  │
    │                         ▼            ▼            ▼                  │
    │                     Worker-0     Worker-1 ...  Worker-N              │
    │                                                                      │
    │   min_workers started up front, more added (up to max_workers)       │
    │   while every worker is busy and tasks are waiting.                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A full queue is the server's signal that it is overloaded: submit() with
block=False returns False right away and the caller answers 503 instead
of letting connections pile up without bound.

Shutdown uses the poison-pill pattern: one None per worker on the queue;
a worker that pulls None exits.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Pull tasks until a poison pill (None) arrives or stop() is called.

    A task that raises is logged and counted; the worker keeps going.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int, poll_interval: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.poll_interval = poll_interval
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._stop_event = threading.Event()

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        while not self._stop_event.is_set():
            try:
                task = self.task_queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()
        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        start = time.time()
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed after {time.time() - start:.3f}s: {e}")
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stop_event.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()
        if not pool.submit(handle, args=(conn,), block=False):
            ...  # overloaded
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(f"invalid worker bounds: min={min_workers} max={max_workers}")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutting_down

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers (max {self.max_workers})")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True
        self._shutting_down = False

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._task_queue, self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    # =========================================================================
    # SUBMITTING WORK
    # =========================================================================

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Returns:
            True if queued, False if the queue was full (block=False, or
            queue_timeout expired).

        Raises:
            RuntimeError: The pool isn't running.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutting_down:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})
        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            logger.warning(f"Task queue full ({self.max_queue_size}), rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """One more worker if nobody is idle and tasks are waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            idle = sum(1 for w in self._workers if w.state == WorkerState.IDLE)
            if idle == 0 and self._task_queue.qsize() > 0:
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the workers.

        Args:
            wait: Let queued tasks finish first. With wait=False, tasks still
                  in the queue are dropped.
            timeout: Upper bound, in seconds, on waiting for the queue to drain.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)
        else:
            self._drain()

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for _ in workers:
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                break
        for worker in workers:
            worker.stop()
        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    def _drain(self):
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def stats(self) -> dict:
        workers = list(self._workers)
        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
                "idle": sum(1 for w in workers if w.state == WorkerState.IDLE),
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
