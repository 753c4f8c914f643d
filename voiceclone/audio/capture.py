"""Microphone capture source with a live analysis tap and chunk accumulation."""

import pyaudio
import logging
from typing import Optional
from datetime import datetime

from ..errors import DeviceUnavailable
from ..models.audio import AudioStats, RecordedClip
from .analysis import AnalysisTap
from .encoder import ChunkEncoder


logger = logging.getLogger(__name__)


class CaptureSource:
    """Owns the microphone handle for one recording session.

    ``acquire()`` opens a PyAudio input stream in callback mode; every chunk
    PortAudio delivers is written to the analysis tap (for the waveform)
    and appended to the chunk encoder (for the final clip). ``release()``
    tears all of it down and can be called any number of times.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        fft_size: int = 2048,
        smoothing_time_constant: float = 0.8,
        min_decibels: float = -90.0,
        max_decibels: float = -10.0,
    ):
        """Initialize capture source with specified parameters.

        Args:
            sample_rate: Audio sample rate
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
            fft_size: Analysis window size for the waveform tap
            smoothing_time_constant: Spectrum smoothing of the tap
            min_decibels: Lower bound of the tap's dynamic range
            max_decibels: Upper bound of the tap's dynamic range
        """
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format

        self.tap = AnalysisTap(
            fft_size=fft_size,
            smoothing_time_constant=smoothing_time_constant,
            min_decibels=min_decibels,
            max_decibels=max_decibels,
            channels=channels,
        )
        self.encoder = ChunkEncoder(sample_rate=sample_rate, channels=channels)

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

    @property
    def is_acquired(self) -> bool:
        return self.stream is not None

    def acquire(self) -> None:
        """Open the microphone and start feeding the tap and the encoder.

        Raises:
            DeviceUnavailable: If permission is denied or no input device exists
        """
        if self.is_acquired:
            logger.warning("Capture source already acquired")
            return

        logger.info("Requesting microphone access")
        self.tap.reset()
        self.encoder = ChunkEncoder(sample_rate=self.sample_rate, channels=self.channels)
        self.total_chunks = 0

        instance = pyaudio.PyAudio()
        try:
            device = instance.get_default_input_device_info()
            stream = instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=self._on_audio,
            )
            stream.start_stream()
        except OSError as e:
            instance.terminate()
            logger.error(f"Microphone not available: {e}")
            raise DeviceUnavailable(f"Microphone not available: {e}") from e

        self.pyaudio_instance = instance
        self.stream = stream
        self.start_time = datetime.now()
        logger.info(f"Audio stream opened on '{device.get('name', 'default')}': "
                    f"{self.sample_rate}Hz, {self.chunk_size} samples/chunk")

    def _on_audio(self, in_data, frame_count, time_info, status):
        """PortAudio callback: runs on the audio thread."""
        if status:
            logger.debug(f"Input stream status flags: {status}")
        if in_data:
            self.total_chunks += 1
            self.tap.write(in_data)
            self.encoder.append(in_data)
        return None, pyaudio.paContinue

    def release(self) -> None:
        """Stop the stream and free the device. Safe to call repeatedly."""
        stream, self.stream = self.stream, None
        instance, self.pyaudio_instance = self.pyaudio_instance, None

        if stream is None and instance is None:
            return

        try:
            if stream is not None:
                try:
                    stream.stop_stream()
                finally:
                    stream.close()
        finally:
            if instance is not None:
                instance.terminate()
            logger.info(f"Capture source released. Total chunks: {self.total_chunks}")

    def finalize(self) -> RecordedClip:
        """Join the accumulated chunks into the session's clip."""
        return self.encoder.finalize()

    def get_stats(self) -> AudioStats:
        """Get current capture statistics."""
        duration = 0.0
        if self.start_time and self.is_acquired:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_capturing=self.is_acquired,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            total_bytes=self.encoder.total_bytes,
            peak_level=self.tap.peak_level,
        )

    def __enter__(self) -> "CaptureSource":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __del__(self):
        """Ensure the device is released on deletion."""
        if self.is_acquired:
            self.release()
