import functools
import logging
import os

from tubeloader.errors import (
    DownloadError,
    InternalError,
    PublishError,
    TubeloaderError,
)
from tubeloader.models.job import Job
from tubeloader.services.youtube_publisher import (
    DEFAULT_PRIVACY_STATUS,
    PublishRequest,
    watch_url,
)

logger = logging.getLogger(__name__)

MSG_DOWNLOADING = "Downloading source file..."
MSG_UPLOADING = "Uploading to YouTube..."
MSG_DONE = "Upload completed successfully."
MSG_PUBLISH_FAILED = "Upload to YouTube failed."


def staging_path_for(staging_dir: str, job_id: str) -> str:
    return os.path.join(staging_dir, f"{job_id}.bin")


def build_publish_request(job: Job, filename: str, media_path: str) -> PublishRequest:
    return PublishRequest(
        title=job.title or filename or f"Upload {job.id}",
        description=job.description or "",
        tags=list(job.tags or ()),
        privacy_status=job.privacy_status or DEFAULT_PRIVACY_STATUS,
        media_path=media_path,
        credential=job.credential,
        redirect_context=job.redirect_context,
    )


# --------------------------------------------------
# Core upload logic
# --------------------------------------------------
def run_upload_job(job_id, *, store, scheduler, fetcher, publisher, staging_dir):
    """
    Drive one job from queued to done/failed.

    fetch -> publish, then cleanup on every exit path: the staging file is
    removed, completedAt is stamped and the scheduler slot is released.
    """
    staging_path = staging_path_for(staging_dir, job_id)

    try:
        try:
            # -------------------------
            # START JOB
            # -------------------------
            job = store.mark_running(job_id, MSG_DOWNLOADING)
            logger.info("Job %s running: %s", job_id, job.source_url)

            # -------------------------
            # FETCH SOURCE
            # -------------------------
            os.makedirs(staging_dir, exist_ok=True)
            fetched = fetcher.fetch(job.source_url, staging_path)
            logger.info("Job %s fetched %d bytes from %s", job_id, fetched.bytes_written, fetched.resolved_url)

            # -------------------------
            # PUBLISH
            # -------------------------
            store.set_message(job_id, MSG_UPLOADING)
            result = publisher.publish(build_publish_request(job, fetched.filename, staging_path))

            if not result.ok:
                raise PublishError(result.error_message or MSG_PUBLISH_FAILED, result.error_code)

            store.mark_done(
                job_id,
                external_id=result.external_id,
                external_url=watch_url(result.external_id),
                message=MSG_DONE,
            )
            logger.info("Job %s published as %s", job_id, result.external_id)

        except DownloadError as e:
            logger.warning("Job %s download failed (%s): %s", job_id, e.url, e)
            _fail(store, job_id, str(e))

        except PublishError as e:
            logger.warning("Job %s publish failed (%s): %s", job_id, e.code or "unknown", e)
            _fail(store, job_id, str(e) or MSG_PUBLISH_FAILED)

        except Exception as e:
            error = InternalError(job_id, str(e) or e.__class__.__name__)
            logger.exception("Job %s crashed", job_id)
            _fail(store, job_id, error.reason)

    finally:
        _cleanup(store, scheduler, job_id, staging_path)


def _fail(store, job_id: str, message: str) -> None:
    try:
        store.mark_failed(job_id, message)
    except TubeloaderError:
        logger.exception("Job %s could not be marked failed", job_id)


def _cleanup(store, scheduler, job_id: str, staging_path: str) -> None:
    try:
        if os.path.exists(staging_path):
            os.remove(staging_path)
    except OSError:
        logger.exception("Job %s staging file %s could not be removed", job_id, staging_path)

    try:
        store.mark_completed(job_id)
    except TubeloaderError:
        logger.exception("Job %s could not be marked completed", job_id)
    finally:
        scheduler.on_worker_complete()

    logger.info("Job %s finished", job_id)


def make_runner(*, store, scheduler, fetcher, publisher, staging_dir):
    """Bind collaborators so the scheduler can start a job by id alone."""
    return functools.partial(
        run_upload_job,
        store=store,
        scheduler=scheduler,
        fetcher=fetcher,
        publisher=publisher,
        staging_dir=staging_dir,
    )
