"""
Error types for the upload pipeline.

Validation errors are raised synchronously to the submitter. Download,
publish and internal errors are captured per job by the worker and only
show up in the job's status message.
"""


class TubeloaderError(Exception):
    """Base exception for all pipeline failures."""
    pass


class ValidationError(TubeloaderError):
    """Raised when a submitted batch is rejected before any job is created."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class DownloadError(TubeloaderError):
    """Raised when the source file cannot be fetched or staged."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(reason)


class PublishError(TubeloaderError):
    """Raised when YouTube rejects or fails an upload."""

    def __init__(self, message: str, code: str = None):
        self.code = code
        super().__init__(message)


class InternalError(TubeloaderError):
    """Wraps an unexpected fault inside a pipeline worker."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(reason)


class JobNotFoundError(TubeloaderError):
    """Raised when a job id is unknown to the store."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class InvalidStateTransitionError(TubeloaderError):
    """Raised when a job would move backwards or leave a terminal state."""

    def __init__(self, job_id: str, current_state: str, target_state: str):
        self.job_id = job_id
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(
            f"Invalid job state transition for {job_id}: "
            f"{current_state} -> {target_state}"
        )
