# tubeloader/services/upload_service.py
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from tubeloader import config
from tubeloader.errors import ValidationError
from tubeloader.models.job import CredentialBundle, Job, NewJob, RedirectContext
from tubeloader.repos.job_store import JobStore
from tubeloader.schemas.upload import UploadItem
from tubeloader.services.source_fetcher import SourceFetcher
from tubeloader.services.validator import validate_upload_items
from tubeloader.services.youtube_publisher import YouTubePublisher
from tubeloader.workers.scheduler import Scheduler, spawn_thread
from tubeloader.workers.upload_task import make_runner

logger = logging.getLogger(__name__)


def _new_job(item: UploadItem) -> NewJob:
    return NewJob(
        source_url=item.sourceUrl.strip(),
        title=item.title or None,
        description=item.description or None,
        tags=tuple(item.tags),
        privacy_status=item.privacyStatus or None,
    )


def _parse_items(items) -> List[UploadItem]:
    try:
        return [UploadItem.model_validate(item) for item in items]
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"Invalid {field or 'item'}: {first.get('msg')}") from e


class UploadService:
    """
    Wires the job store, scheduler and pipeline worker together and
    exposes the submission and status entry points.
    """

    def __init__(
        self,
        *,
        store: Optional[JobStore] = None,
        fetcher=None,
        publisher=None,
        max_concurrent: int = config.MAX_CONCURRENT_UPLOADS,
        max_bulk_items: int = config.MAX_BULK_ITEMS,
        status_limit: int = config.STATUS_LIMIT,
        staging_dir: str = config.STAGING_DIR,
        spawn=spawn_thread,
    ):
        self.store = store if store is not None else JobStore()
        self.fetcher = fetcher if fetcher is not None else SourceFetcher(timeout=config.FETCH_TIMEOUT_SECONDS)
        self.publisher = publisher if publisher is not None else YouTubePublisher()

        self.max_bulk_items = max_bulk_items
        self.status_limit = status_limit
        self.staging_dir = staging_dir

        self.scheduler = Scheduler(max_concurrent, spawn=spawn)
        self.scheduler.bind(
            make_runner(
                store=self.store,
                scheduler=self.scheduler,
                fetcher=self.fetcher,
                publisher=self.publisher,
                staging_dir=self.staging_dir,
            )
        )

    # --------------------------------------------------
    # Submission
    # --------------------------------------------------
    def submit(
        self,
        items,
        credential: CredentialBundle,
        redirect_context: RedirectContext,
    ) -> List[str]:
        """
        Validate the whole batch, then create and enqueue one job per item.
        Raises ValidationError with nothing created on a bad batch.
        """
        validate_upload_items(items, self.max_bulk_items)

        new_jobs = [_new_job(item) for item in _parse_items(items)]
        jobs = [self.store.create(new_job, credential, redirect_context) for new_job in new_jobs]
        job_ids = [job.id for job in jobs]

        self.scheduler.enqueue_many(job_ids)

        logger.info("Queued %d upload(s)", len(job_ids))
        return job_ids

    # --------------------------------------------------
    # Status
    # --------------------------------------------------
    def recent_jobs(self, limit: Optional[int] = None) -> List[Job]:
        cap = self.status_limit if limit is None else min(limit, self.status_limit)
        return self.store.list_recent(cap)

    def get_job(self, job_id: str) -> Job:
        return self.store.get(job_id)

    def queue_info(self) -> Dict[str, int]:
        return {
            "capacity": self.scheduler.capacity,
            "running": self.scheduler.running_count,
            "pending": self.scheduler.pending_count,
        }

    def job_counts(self) -> Dict[str, int]:
        return self.store.count_by_status()
