# tubeloader/repos/job_store.py
import itertools
import logging
import threading
import uuid
from collections import Counter
from typing import Dict, List, Optional

from tubeloader.errors import JobNotFoundError
from tubeloader.models.job import (
    CredentialBundle,
    Job,
    JobStatus,
    NewJob,
    RedirectContext,
    utcnow,
)

logger = logging.getLogger(__name__)


class JobStore:
    """
    In-memory job repository.

    - Jobs live for the process lifetime (no eviction, no persistence)
    - Every read returns a deep copy taken under the lock
    - Every write is a single short critical section
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)

    # -------------------------------------------------
    # Creation / reads
    # -------------------------------------------------
    def create(
        self,
        new_job: NewJob,
        credential: CredentialBundle,
        redirect_context: RedirectContext,
    ) -> Job:
        with self._lock:
            job_id = uuid.uuid4().hex
            while job_id in self._jobs:
                job_id = uuid.uuid4().hex

            job = Job(
                id=job_id,
                sequence=next(self._sequence),
                source_url=new_job.source_url,
                title=new_job.title,
                description=new_job.description,
                tags=tuple(new_job.tags),
                privacy_status=new_job.privacy_status,
                credential=credential,
                redirect_context=redirect_context,
            )
            self._jobs[job_id] = job
            snapshot = job.snapshot()

        logger.info("Created job %s for %s", job_id, new_job.source_url)
        return snapshot

    def get(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return job.snapshot()

    def list_recent(self, limit: int) -> List[Job]:
        if limit <= 0:
            return []

        with self._lock:
            # dict preserves insertion order == sequence order
            newest = list(self._jobs.values())[-limit:]
            return [job.snapshot() for job in reversed(newest)]

    def count_by_status(self) -> Dict[str, int]:
        with self._lock:
            counts = Counter(job.status.value for job in self._jobs.values())
        return {status.value: counts.get(status.value, 0) for status in JobStatus}

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    # -------------------------------------------------
    # Transitions (owning worker only)
    # -------------------------------------------------
    def mark_running(self, job_id: str, message: str) -> Job:
        return self._update(job_id, status=JobStatus.RUNNING, message=message, started_at=utcnow())

    def set_message(self, job_id: str, message: str) -> Job:
        return self._update(job_id, message=message)

    def mark_done(
        self,
        job_id: str,
        *,
        external_id: str,
        external_url: str,
        message: str,
    ) -> Job:
        return self._update(
            job_id,
            status=JobStatus.DONE,
            message=message,
            external_id=external_id,
            external_url=external_url,
        )

    def mark_failed(self, job_id: str, message: str) -> Job:
        return self._update(job_id, status=JobStatus.FAILED, message=message)

    def mark_completed(self, job_id: str) -> Job:
        with self._lock:
            job = self._require(job_id)
            if job.completed_at is None:
                job.completed_at = utcnow()
            return job.snapshot()

    def _update(self, job_id: str, status: Optional[JobStatus] = None, **fields) -> Job:
        with self._lock:
            job = self._require(job_id)
            if status is not None:
                job.transition(status)
            for name, value in fields.items():
                if name == "started_at" and job.started_at is not None:
                    continue
                setattr(job, name, value)
            return job.snapshot()

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job
