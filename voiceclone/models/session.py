"""Recording session models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .audio import RecordedClip


class RecordingState(Enum):
    """Lifecycle of a recording session."""
    IDLE = "idle"
    CAPTURING = "capturing"
    STOPPED = "stopped"


@dataclass
class RecordingSession:
    """State of the current recording, owned by the session controller."""
    state: RecordingState = RecordingState.IDLE
    elapsed_seconds: int = 0
    chunks: List[bytes] = field(default_factory=list)
    clip: Optional[RecordedClip] = None
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
