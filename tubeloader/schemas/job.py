# tubeloader/schemas/job.py
from pydantic import BaseModel
from typing import List, Optional


class JobOut(BaseModel):
    id: str
    status: str
    message: str
    sourceUrl: str
    title: Optional[str] = None

    # Present only when job is done
    videoId: Optional[str] = None
    videoUrl: Optional[str] = None

    createdAt: str
    startedAt: Optional[str] = None
    completedAt: Optional[str] = None


class JobList(BaseModel):
    jobs: List[JobOut]


class AppConfig(BaseModel):
    redirectUri: str
    maxConcurrentUploads: int
    maxBulkItems: int
