"""Chunk accumulation and clip encoding."""

import io
import logging
import threading
import wave
from abc import ABC, abstractmethod
from typing import List

from ..models.audio import RecordedClip

logger = logging.getLogger(__name__)


class ChunkEncoder:
    """Accumulates raw PCM chunks and turns them into one WAV clip on finalize."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1, sample_width: int = 2):
        """Initialize chunk encoder.

        Args:
            sample_rate: Audio sample rate
            channels: Number of audio channels
            sample_width: Bytes per sample (2 for 16-bit audio)
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width

        self._chunks: List[bytes] = []
        self._lock = threading.Lock()
        self.total_bytes = 0

    def append(self, chunk: bytes) -> None:
        """Add one produced chunk; empty chunks are skipped."""
        if not chunk:
            return
        with self._lock:
            self._chunks.append(chunk)
            self.total_bytes += len(chunk)

    @property
    def chunks(self) -> List[bytes]:
        with self._lock:
            return list(self._chunks)

    @property
    def accumulated(self) -> List[bytes]:
        """The live list chunks are appended to; grows while capturing."""
        return self._chunks

    @property
    def duration_seconds(self) -> float:
        bytes_per_second = self.sample_rate * self.channels * self.sample_width
        return self.total_bytes / bytes_per_second if bytes_per_second else 0.0

    def finalize(self) -> RecordedClip:
        """Concatenate every accumulated chunk into a single WAV blob."""
        with self._lock:
            pcm = b''.join(self._chunks)
            chunk_count = len(self._chunks)

        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(pcm)

        clip = RecordedClip(
            data=buffer.getvalue(),
            sample_rate=self.sample_rate,
            channels=self.channels,
            duration_seconds=self.duration_seconds,
        )
        logger.info(f"Finalized clip: {chunk_count} chunks, {clip.size} bytes, "
                    f"{clip.duration_seconds:.1f}s")
        return clip

    def clear(self) -> None:
        with self._lock:
            self._chunks.clear()
            self.total_bytes = 0


class ClipEncoder(ABC):
    """Transcodes a finished clip before upload."""

    @abstractmethod
    async def encode(self, clip: RecordedClip) -> RecordedClip:
        """Return the clip in the format the backend should receive."""
        pass


class PassThroughEncoder(ClipEncoder):
    """Uploads the WAV as recorded."""

    async def encode(self, clip: RecordedClip) -> RecordedClip:
        return clip
