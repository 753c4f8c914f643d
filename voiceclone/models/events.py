"""Event models for pub/sub state notifications."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from .session import RecordingState


class PipelineStage(Enum):
    """Stages of the upload -> poll -> load pipeline."""
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    AWAITING_RESPONSES = "awaiting_responses"
    LOADING_RESPONSES = "loading_responses"
    READY = "ready"
    FAILED = "failed"


@dataclass
class RecordingStateEvent:
    """Recording session moved to a new state."""
    state: RecordingState
    elapsed_seconds: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class RecordingTickEvent:
    """One tick of the recording clock."""
    elapsed_seconds: int
    max_seconds: int
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class PipelineStageEvent:
    """Upload pipeline moved to a new stage."""
    stage: PipelineStage
    job_id: Optional[int] = None
    voice_id: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class PlaybackStateEvent:
    """Active clip changed (None means nothing is playing)."""
    active_clip_id: Optional[Union[int, str]]
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
