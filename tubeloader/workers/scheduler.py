"""
FIFO scheduler with a global concurrency cap.

Design rules:
- Admission order equals enqueue order (no priority)
- At most `capacity` workers run at once
- Workers are started as independent threads; dispatch never waits on them
- The pending queue and running counter are private and only change
  inside enqueue / on_worker_complete, under one lock
"""

import logging
import threading
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional

logger = logging.getLogger(__name__)


def spawn_thread(target: Callable[[str], None], job_id: str) -> None:
    thread = threading.Thread(
        target=target,
        args=(job_id,),
        name=f"upload-{job_id[:8]}",
        daemon=True,
    )
    thread.start()


class Scheduler:
    """
    Admission authority for upload jobs.

    The runner is called with a job id on its own thread and MUST call
    on_worker_complete() exactly once when it exits, success or failure.
    """

    def __init__(
        self,
        capacity: int,
        runner: Optional[Callable[[str], None]] = None,
        spawn: Callable[[Callable[[str], None], str], None] = spawn_thread,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self._capacity = capacity
        self._runner = runner
        self._spawn = spawn

        self._pending: Deque[str] = deque()
        self._running = 0
        self._lock = threading.Lock()
        self._changed = threading.Condition(self._lock)

    def bind(self, runner: Callable[[str], None]) -> None:
        """Attach the worker entry point (it usually needs the scheduler itself)."""
        self._runner = runner

    # -------------------------------------------------
    # Introspection (read-only)
    # -------------------------------------------------
    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def running_count(self) -> int:
        with self._lock:
            return self._running

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until nothing is running or pending. Returns False on timeout."""
        with self._changed:
            return self._changed.wait_for(
                lambda: self._running == 0 and not self._pending,
                timeout=timeout,
            )

    # -------------------------------------------------
    # Entry points
    # -------------------------------------------------
    def enqueue(self, job_id: str) -> None:
        self.enqueue_many([job_id])

    def enqueue_many(self, job_ids: Iterable[str]) -> None:
        with self._lock:
            self._pending.extend(job_ids)
            logger.debug("[Scheduler] Pending: %d", len(self._pending))
        self._dispatch()

    def on_worker_complete(self) -> None:
        with self._changed:
            if self._running == 0:
                logger.error("[Scheduler] Worker completion reported with no worker running")
            else:
                self._running -= 1
            logger.debug("[Scheduler] Worker finished, running: %d", self._running)
            self._changed.notify_all()

        # Runs on a finishing worker thread; a failed start leaves the job
        # queued for the next enqueue or completion.
        try:
            self._dispatch()
        except RuntimeError:
            logger.error(
                "[Scheduler] Dispatch after completion failed, pending: %d",
                self.pending_count,
            )

    # -------------------------------------------------
    # Dispatch
    # -------------------------------------------------
    def _dispatch(self) -> None:
        if self._runner is None:
            raise RuntimeError("Scheduler has no runner bound")

        admitted: List[str] = []
        with self._lock:
            while self._running < self._capacity and self._pending:
                admitted.append(self._pending.popleft())
                self._running += 1

        # Slots are already reserved; start outside the lock so an inline
        # runner can call back into on_worker_complete.
        for index, job_id in enumerate(admitted):
            logger.info("[Scheduler] Dispatching job %s", job_id)
            try:
                self._spawn(self._runner, job_id)
            except RuntimeError:
                logger.exception("[Scheduler] Could not start worker for job %s", job_id)
                unstarted = admitted[index:]
                with self._changed:
                    self._pending.extendleft(reversed(unstarted))
                    self._running -= len(unstarted)
                    self._changed.notify_all()
                raise
