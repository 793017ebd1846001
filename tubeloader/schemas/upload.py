# tubeloader/schemas/upload.py
from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional, Union


class UploadItem(BaseModel):
    """
    One entry of a bulk upload.
    Field names mirror the JSON sent by the web client.
    """

    sourceUrl: str = Field(..., description="HTTP(S) URL of the video file (Google Drive share links allowed)")
    title: Optional[str] = Field(None, description="YouTube title; falls back to the downloaded filename")
    description: Optional[str] = None
    privacyStatus: Optional[str] = Field(None, description="private | unlisted | public")
    tags: List[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value: Union[None, str, List[Any]]):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            raise ValueError("tags must be a list or a comma-separated string")
        return [str(v).strip() for v in value if str(v).strip()]


class UploadRequest(BaseModel):
    # shape is checked by validate_upload_items
    items: Any = None


class UploadResponse(BaseModel):
    jobIds: List[str]
