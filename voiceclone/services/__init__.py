"""Services layer for VoiceClone application logic."""

from .recording_service import RecordingSessionController
from .orchestrator import UploadOrchestrator, VoicePipeline
from .response_loader import ResponseLoader
from .polling import poll_until_terminal

__all__ = [
    "RecordingSessionController",
    "UploadOrchestrator",
    "VoicePipeline",
    "ResponseLoader",
    "poll_until_terminal",
]
