"""Clip playback on a PyAudio output stream."""

import io
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

import pyaudio
import soundfile as sf

logger = logging.getLogger(__name__)


class PlayerError(Exception):
    """A clip could not be decoded or played."""


class PlaybackHandle(ABC):
    """One playable clip; ``stop()`` rewinds it and frees the device."""

    @abstractmethod
    def start(self, on_finished: Callable[[], None]) -> None:
        """Begin playback; ``on_finished`` fires only on natural end of the clip."""
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @property
    @abstractmethod
    def is_playing(self) -> bool:
        pass


class AudioPlayer(ABC):
    """Creates playback handles from a location or from downloaded bytes."""

    @abstractmethod
    def open_location(self, location: str) -> PlaybackHandle:
        pass

    @abstractmethod
    def open_bytes(self, data: bytes) -> PlaybackHandle:
        pass


def is_remote(location: str) -> bool:
    return location.startswith(('http://', 'https://'))


class PyAudioHandle(PlaybackHandle):
    """Streams decoded PCM frames from a daemon thread."""

    def __init__(self, frames: bytes, sample_width: int, channels: int, rate: int,
                 chunk_frames: int = 1024):
        self.frames = frames
        self.sample_width = sample_width
        self.channels = channels
        self.rate = rate
        self.chunk_bytes = chunk_frames * sample_width * channels
        self.position = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self.playback_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()
        self._position_lock = threading.Lock()

    @property
    def is_playing(self) -> bool:
        return self.playback_thread is not None and self.playback_thread.is_alive()

    def start(self, on_finished: Callable[[], None]) -> None:
        instance = pyaudio.PyAudio()
        try:
            stream = instance.open(
                format=instance.get_format_from_width(self.sample_width),
                channels=self.channels,
                rate=self.rate,
                output=True,
            )
        except (OSError, ValueError) as e:
            instance.terminate()
            raise PlayerError(f"Cannot open output stream: {e}") from e

        self.pyaudio_instance = instance
        self.stream = stream
        self.stop_event.clear()
        self.playback_thread = threading.Thread(
            target=self._play_frames, args=(on_finished,), daemon=True)
        self.playback_thread.name = "PlaybackThread"
        self.playback_thread.start()

    def _play_frames(self, on_finished: Callable[[], None]) -> None:
        """Internal method: write frames until the clip ends or stop is requested."""
        finished = False
        try:
            while not self.stop_event.is_set():
                chunk = self.frames[self.position:self.position + self.chunk_bytes]
                if not chunk:
                    finished = True
                    break
                self.stream.write(chunk)
                with self._position_lock:
                    if not self.stop_event.is_set():
                        self.position += len(chunk)
        except OSError as e:
            logger.error(f"Playback interrupted: {e}")
        finally:
            self._close_stream()
        if finished:
            on_finished()

    def _close_stream(self) -> None:
        stream, self.stream = self.stream, None
        instance, self.pyaudio_instance = self.pyaudio_instance, None
        try:
            if stream is not None:
                stream.stop_stream()
                stream.close()
        finally:
            if instance is not None:
                instance.terminate()

    def stop(self) -> None:
        """Pause and rewind without waiting for the playback thread.

        Called from the event loop, so it only signals: the thread finishes
        its current write, then closes the stream and frees the device.
        """
        with self._position_lock:
            self.stop_event.set()
            self.position = 0
        self.playback_thread = None


class PyAudioPlayer(AudioPlayer):
    """Plays WAV, MP3, OGG and FLAC clips decoded with libsndfile.

    Remote URLs cannot be opened directly and must be fetched.
    """

    def __init__(self, chunk_frames: int = 1024):
        self.chunk_frames = chunk_frames

    def open_location(self, location: str) -> PlaybackHandle:
        if is_remote(location):
            raise PlayerError(f"Cannot stream remote audio directly: {location}")
        try:
            data = Path(location).read_bytes()
        except OSError as e:
            raise PlayerError(f"Cannot read audio file {location}: {e}") from e
        return self.open_bytes(data)

    def open_bytes(self, data: bytes) -> PlaybackHandle:
        """Decode a complete audio file in memory to 16-bit PCM."""
        try:
            samples, sample_rate = sf.read(io.BytesIO(data), dtype="int16", always_2d=True)
        except (RuntimeError, TypeError, ValueError) as e:
            raise PlayerError(f"Unsupported audio data: {e}") from e

        handle = PyAudioHandle(
            frames=samples.tobytes(),
            sample_width=2,
            channels=samples.shape[1],
            rate=sample_rate,
            chunk_frames=self.chunk_frames,
        )
        logger.debug(f"Decoded clip: {len(samples)} frames, {handle.channels}ch at {handle.rate}Hz")
        return handle
