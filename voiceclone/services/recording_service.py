"""Recording session controller: capture source, waveform and the 60 s clock."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from .. import events
from ..audio.capture import CaptureSource
from ..config import VoiceCloneConfig
from ..errors import DeviceUnavailable, RecordingAlreadyActive
from ..events import EventPublisher
from ..models.audio import RecordedClip
from ..models.events import RecordingStateEvent, RecordingTickEvent
from ..models.session import RecordingSession, RecordingState
from ..ui.waveform import WaveformRenderer

logger = logging.getLogger(__name__)


class RecordingSessionController:
    """Coordinates one recording at a time.

    State machine: IDLE --start--> CAPTURING --stop--> STOPPED --start--> CAPTURING.
    The controller is the single owner of the capture source while capturing
    and always releases it before the session counts as stopped.
    """

    def __init__(
        self,
        source_factory: Callable[[], CaptureSource],
        renderer: Optional[WaveformRenderer] = None,
        publisher: Optional[EventPublisher] = None,
        max_seconds: int = 60,
        tick_seconds: float = 1.0,
    ):
        """Initialize recording session controller.

        Args:
            source_factory: Builds a fresh capture source for each session
            renderer: Optional live waveform renderer
            publisher: Event publisher for state and tick events
            max_seconds: Recording ceiling; reaching it stops automatically
            tick_seconds: Period of the recording clock
        """
        self.source_factory = source_factory
        self.renderer = renderer
        self.publisher = publisher or EventPublisher()
        self.max_seconds = max_seconds
        self.tick_seconds = tick_seconds

        self.session = RecordingSession()
        self._source: Optional[CaptureSource] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: VoiceCloneConfig, renderer: Optional[WaveformRenderer] = None,
                    publisher: Optional[EventPublisher] = None) -> "RecordingSessionController":
        """Build a controller whose capture sources follow the ``audio.*`` settings."""
        def source_factory() -> CaptureSource:
            return CaptureSource(
                sample_rate=config.get('audio.sample_rate', 16000),
                chunk_size=config.get('audio.chunk_size', 1024),
                channels=config.get('audio.channels', 1),
                fft_size=config.get('audio.fft_size', 2048),
                smoothing_time_constant=config.get('audio.smoothing_time_constant', 0.8),
                min_decibels=config.get('audio.min_decibels', -90.0),
                max_decibels=config.get('audio.max_decibels', -10.0),
            )

        return cls(
            source_factory=source_factory,
            renderer=renderer,
            publisher=publisher,
            max_seconds=config.get('recording.max_seconds', 60),
            tick_seconds=config.get('recording.tick_seconds', 1.0),
        )

    @property
    def state(self) -> RecordingState:
        return self.session.state

    @property
    def elapsed_seconds(self) -> int:
        return self.session.elapsed_seconds

    @property
    def source(self) -> Optional[CaptureSource]:
        return self._source

    def _set_state(self, state: RecordingState) -> None:
        self.session.state = state
        logger.info(f"Recording state -> {state.value} ({self.session.elapsed_seconds}s)")
        self.publisher.publish(events.RECORDING_STATE,
                               RecordingStateEvent(state=state, elapsed_seconds=self.session.elapsed_seconds))

    async def start(self) -> None:
        """Acquire the microphone and begin a new session.

        Raises:
            RecordingAlreadyActive: If a session is already capturing
            DeviceUnavailable: If the microphone could not be opened; the
                controller is left IDLE and nothing is started
        """
        if self.session.state is RecordingState.CAPTURING:
            raise RecordingAlreadyActive()

        source = self.source_factory()
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, source.acquire)
        except DeviceUnavailable:
            source.release()
            self.session = RecordingSession()
            logger.warning("Recording not started: microphone unavailable")
            raise

        # Previous clip (if any) is dropped from controller state here.
        self._source = source
        self._stop_task = None
        self.session = RecordingSession(chunks=source.encoder.accumulated, started_at=datetime.now())
        self._set_state(RecordingState.CAPTURING)

        if self.renderer is not None:
            self.renderer.start(source.tap)
        self._timer_task = asyncio.ensure_future(self._run_clock())

    async def _run_clock(self) -> None:
        """Advance elapsed time once per tick; the tick reaching the ceiling stops."""
        while self.session.state is RecordingState.CAPTURING:
            await asyncio.sleep(self.tick_seconds)
            if self.session.state is not RecordingState.CAPTURING or self._stop_task is not None:
                return

            self.session.elapsed_seconds = min(self.session.elapsed_seconds + 1, self.max_seconds)
            self.publisher.publish(events.RECORDING_TICK,
                                   RecordingTickEvent(elapsed_seconds=self.session.elapsed_seconds,
                                                      max_seconds=self.max_seconds))

            if self.session.elapsed_seconds >= self.max_seconds:
                logger.info(f"Maximum recording duration of {self.max_seconds}s reached")
                self._begin_stop()
                return

    def _begin_stop(self) -> asyncio.Task:
        if self._stop_task is None:
            self._stop_task = asyncio.ensure_future(self._stop_session())
        return self._stop_task

    async def stop(self) -> Optional[RecordedClip]:
        """Stop capturing and return the finished clip.

        Only the first call of a session does the work; later and concurrent
        calls get the same clip. Returns None when nothing was recorded.
        """
        if self._stop_task is None:
            if self.session.state is RecordingState.IDLE:
                logger.warning("No recording in progress")
                return None
            if self.session.state is RecordingState.STOPPED:
                return self.session.clip
        return await asyncio.shield(self._begin_stop())

    async def wait_until_stopped(self) -> Optional[RecordedClip]:
        """Block until the current session stops (manually or at the ceiling)."""
        while self.session.state is RecordingState.CAPTURING and self._stop_task is None:
            await asyncio.sleep(self.tick_seconds / 4)
        return await self.stop()

    async def _stop_session(self) -> RecordedClip:
        timer, self._timer_task = self._timer_task, None
        if timer is not None:
            timer.cancel()
            await asyncio.gather(timer, return_exceptions=True)

        if self.renderer is not None:
            await self.renderer.stop()

        source, self._source = self._source, None
        try:
            source.release()
        finally:
            self.session.stopped_at = datetime.now()
            self._set_state(RecordingState.STOPPED)

        clip = source.finalize()
        self.session.chunks = source.encoder.chunks
        self.session.clip = clip
        return clip
