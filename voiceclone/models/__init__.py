"""Data models for the VoiceClone application."""

from .audio import AnalysisFrame, AudioStats, RecordedClip, new_analysis_frame
from .session import RecordingState, RecordingSession
from .jobs import JobStatus, UploadJob
from .responses import ResponseClip, LoadOutcome, LoadResult
from .avatar import Avatar, Animation
from .events import (
    PipelineStage,
    RecordingStateEvent,
    RecordingTickEvent,
    PipelineStageEvent,
    PlaybackStateEvent,
)

__all__ = [
    "AnalysisFrame",
    "AudioStats",
    "RecordedClip",
    "new_analysis_frame",
    "RecordingState",
    "RecordingSession",
    "JobStatus",
    "UploadJob",
    "ResponseClip",
    "LoadOutcome",
    "LoadResult",
    "Avatar",
    "Animation",
    # Events
    "PipelineStage",
    "RecordingStateEvent",
    "RecordingTickEvent",
    "PipelineStageEvent",
    "PlaybackStateEvent",
]
