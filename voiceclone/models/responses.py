"""Response clip models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ResponseClip(BaseModel):
    """A pre-generated answer spoken in the cloned voice."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: int
    question: str
    audio_url: str = Field(alias="audioUrl")


class LoadOutcome(Enum):
    """Result category of a response-list fetch."""
    LOADED = "loaded"
    EMPTY = "empty"    # no responses yet, worth retrying later
    FAILED = "failed"  # network or server error


@dataclass
class LoadResult:
    """Outcome of one ``ResponseLoader.load`` call."""
    voice_id: str
    outcome: LoadOutcome
    responses: Tuple[ResponseClip, ...] = ()
    error: Optional[str] = None
    loaded_at: datetime = field(default_factory=datetime.now)

    @property
    def is_empty(self) -> bool:
        return not self.responses
