"""Upload job models parsed from the voice-cloning backend."""

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Status of a server-side cloning job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @classmethod
    def parse(cls, value: Any) -> "JobStatus":
        """Map a raw status string to a status; unknown values are still in progress."""
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown job status {value!r}, treating as processing")
            return cls.PROCESSING


class UploadJob(BaseModel):
    """A cloning job as reported by ``/audio/status/{id}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    status: JobStatus = JobStatus.PENDING
    voice_id: Optional[str] = Field(default=None, alias="voiceId")
    original_url: Optional[str] = Field(default=None, alias="originalUrl")
    cloned_url: Optional[str] = Field(default=None, alias="clonedUrl")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value: Any) -> JobStatus:
        if isinstance(value, JobStatus):
            return value
        return JobStatus.parse(value)
