"""Exclusive playback of response clips, the cloned voice and the recording preview."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

from .. import events
from ..errors import ApiRequestFailed, PlaybackFailed
from ..events import EventPublisher
from ..models.events import PlaybackStateEvent
from .player import AudioPlayer, PlaybackHandle, PlayerError

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[bytes]]
ClipKey = Union[int, str]

# Keys for the clips that are not numbered response clips
CLONED_VOICE = "cloned-voice"
RECORDING_PREVIEW = "recording-preview"


def describe(clip_id: ClipKey) -> str:
    if clip_id == CLONED_VOICE:
        return "cloned voice"
    if clip_id == RECORDING_PREVIEW:
        return "recording preview"
    return f"chat response {clip_id}"


class PlaybackArbiter:
    """Makes sure at most one clip is audible.

    Every ``play``/``stop`` bumps a generation counter; a fallback fetch that
    returns after the generation moved on is dropped instead of started, so
    a late download can never overlap a newer clip.
    """

    def __init__(self, player: AudioPlayer, fetch: Optional[Fetch] = None,
                 publisher: Optional[EventPublisher] = None):
        """Initialize playback arbiter.

        Args:
            player: Audio player producing playback handles
            fetch: Downloads a location as bytes for the fallback path;
                without it only direct playback is attempted
            publisher: Event publisher for playback state changes
        """
        self.player = player
        self.fetch = fetch
        self.publisher = publisher or EventPublisher()

        self.active_clip_id: Optional[ClipKey] = None
        self._handle: Optional[PlaybackHandle] = None
        self._generation = 0

    @property
    def is_playing(self) -> bool:
        return self.active_clip_id is not None

    def _publish(self, error: Optional[str] = None) -> None:
        self.publisher.publish(events.PLAYBACK_STATE,
                               PlaybackStateEvent(active_clip_id=self.active_clip_id, error=error))

    def _claim(self, clip_id: ClipKey) -> Optional[int]:
        """Stop whatever plays; returns the new generation, or None when this toggled ``clip_id`` off."""
        if self.active_clip_id == clip_id:
            logger.info(f"Toggling off {describe(clip_id)}")
            self.stop()
            return None

        self.stop()
        self._generation += 1
        self.active_clip_id = clip_id
        return self._generation

    async def play(self, clip_id: ClipKey, location: str) -> bool:
        """Toggle ``clip_id``: stop it if it is active, otherwise play it exclusively.

        Returns True when the clip started, False when the call stopped it
        (or a newer play/stop superseded it while downloading).

        Raises:
            PlaybackFailed: Direct playback and the fetch fallback both failed
        """
        generation = self._claim(clip_id)
        if generation is None:
            return False
        loop = asyncio.get_running_loop()
        logger.info(f"Playing {describe(clip_id)}: {location}")

        try:
            self._start(self.player.open_location(location), generation, loop)
            return True
        except PlayerError as e:
            if self.fetch is None:
                return self._fail(clip_id, generation, f"Failed to play {describe(clip_id)}: {e}")
            logger.warning(f"Direct playback of {describe(clip_id)} failed ({e}), fetching audio instead")

        try:
            data = await self.fetch(location)
        except ApiRequestFailed as e:
            return self._fail(clip_id, generation, f"Failed to load {describe(clip_id)} audio: {e.detail}")

        if generation != self._generation:
            logger.debug(f"Dropping superseded download of {describe(clip_id)}")
            return False

        try:
            self._start(self.player.open_bytes(data), generation, loop)
        except PlayerError as e:
            return self._fail(clip_id, generation, f"Failed to play {describe(clip_id)}: {e}")
        return True

    async def play_bytes(self, clip_id: ClipKey, data: bytes) -> bool:
        """Toggle a clip already held in memory, such as the sample just recorded.

        Raises:
            PlaybackFailed: The data could not be decoded or the output device opened
        """
        generation = self._claim(clip_id)
        if generation is None:
            return False
        logger.info(f"Playing {describe(clip_id)} from memory ({len(data)} bytes)")

        try:
            self._start(self.player.open_bytes(data), generation, asyncio.get_running_loop())
        except PlayerError as e:
            return self._fail(clip_id, generation, f"Failed to play {describe(clip_id)}: {e}")
        return True

    async def wait_until_finished(self, poll_interval: float = 0.1) -> None:
        """Block until nothing is playing."""
        while self.is_playing:
            await asyncio.sleep(poll_interval)

    def _start(self, handle: PlaybackHandle, generation: int, loop: asyncio.AbstractEventLoop) -> None:
        def on_finished() -> None:
            loop.call_soon_threadsafe(self._on_finished, generation)

        handle.start(on_finished)
        self._handle = handle
        self._publish()

    def _on_finished(self, generation: int) -> None:
        if generation != self._generation:
            return
        logger.info(f"Playback of {describe(self.active_clip_id)} ended")
        self._handle = None
        self.active_clip_id = None
        self._publish()

    def _fail(self, clip_id: ClipKey, generation: int, message: str) -> bool:
        if generation != self._generation:
            return False
        logger.error(message)
        self._handle = None
        self.active_clip_id = None
        self._publish(error=message)
        raise PlaybackFailed(message, clip_id=clip_id)

    def stop(self) -> None:
        """Stop and rewind the active clip, if any."""
        self._generation += 1
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.stop()
        if self.active_clip_id is not None:
            logger.debug(f"Stopped {describe(self.active_clip_id)}")
            self.active_clip_id = None
            self._publish()
