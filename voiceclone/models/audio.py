"""Audio-related data models."""

from dataclasses import dataclass

import numpy as np

# A fixed-size block of unsigned time-domain bytes (silence == 128). The
# analysis tap overwrites the same array in place on every refresh.
AnalysisFrame = np.ndarray

SILENCE_BYTE = 128


def new_analysis_frame(size: int) -> AnalysisFrame:
    """Allocate a silent analysis frame of ``size`` samples."""
    return np.full(size, SILENCE_BYTE, dtype=np.uint8)


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_capturing: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    total_bytes: int
    peak_level: float = 0.0


@dataclass
class RecordedClip:
    """A finished recording ready for upload."""
    data: bytes
    sample_rate: int
    channels: int = 1
    mime_type: str = "audio/wav"
    filename: str = "recording.wav"
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)
