"""Avatar collaborator models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .jobs import JobStatus


class Avatar(BaseModel):
    """An uploaded face photo."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    name: str
    description: Optional[str] = None
    image_url: str = Field(alias="imageUrl")
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class Animation(BaseModel):
    """A lip-sync animation job for an avatar."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    avatar_id: int = Field(alias="avatarId")
    text: str = ""
    status: JobStatus = JobStatus.PENDING
    audio_url: Optional[str] = Field(default=None, alias="audioUrl")
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, value: Any) -> JobStatus:
        if isinstance(value, JobStatus):
            return value
        return JobStatus.parse(value)
