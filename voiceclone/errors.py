"""Exception hierarchy for VoiceClone.

Every failure in the capture/upload/playback pipeline is one of these, so
callers can return the app to a stable state with a single ``except``.
"""

from typing import Optional, Union


class VoiceCloneError(Exception):
    """Base exception for all VoiceClone errors."""

    def __init__(self, detail: str = "An unexpected error occurred", code: str = "VOICECLONE_ERROR"):
        self.detail = detail
        self.code = code
        super().__init__(detail)


class DeviceUnavailable(VoiceCloneError):
    """Raised when the microphone cannot be opened (permission or hardware)."""

    def __init__(self, detail: str = "Microphone is not available"):
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE")


class RecordingAlreadyActive(VoiceCloneError):
    """Raised when starting a recording while one is already capturing."""

    def __init__(self):
        super().__init__(detail="A recording is already active", code="RECORDING_ALREADY_ACTIVE")


class UploadFailed(VoiceCloneError):
    """Raised when the recorded clip could not be uploaded."""

    def __init__(self, detail: str = "Upload failed"):
        super().__init__(detail=detail, code="UPLOAD_FAILED")


class ProcessingFailed(VoiceCloneError):
    """Raised when the backend reports a failed job or status polling breaks."""

    def __init__(self, detail: str = "Voice cloning failed", job_id: Optional[int] = None):
        self.job_id = job_id
        super().__init__(detail=detail, code="PROCESSING_FAILED")


class LoadFailed(VoiceCloneError):
    """Raised when the response list could not be fetched (not when it is empty)."""

    def __init__(self, detail: str = "Failed to load chat responses", voice_id: Optional[str] = None):
        self.voice_id = voice_id
        super().__init__(detail=detail, code="LOAD_FAILED")


class PlaybackFailed(VoiceCloneError):
    """Raised when both direct and fallback playback of a clip failed."""

    def __init__(self, detail: str = "Failed to play chat response", clip_id: Optional[Union[int, str]] = None):
        self.clip_id = clip_id
        super().__init__(detail=detail, code="PLAYBACK_FAILED")


class AvatarRequestFailed(VoiceCloneError):
    """Raised when an avatar endpoint returns an error."""

    def __init__(self, detail: str = "Avatar request failed"):
        super().__init__(detail=detail, code="AVATAR_REQUEST_FAILED")


class ApiRequestFailed(VoiceCloneError):
    """Low-level HTTP failure with a category used to pick user-facing messages.

    Categories: "connection", "timeout", "http", "payload".
    """

    def __init__(self, detail: str, category: str = "http", status: Optional[int] = None):
        self.category = category
        self.status = status
        super().__init__(detail=detail, code="API_REQUEST_FAILED")
