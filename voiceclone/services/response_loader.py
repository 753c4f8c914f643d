"""Loads the generated response clips for a voice identity."""

import logging
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from .. import events
from ..api.client import VoiceCloneClient
from ..errors import ApiRequestFailed, LoadFailed
from ..events import EventPublisher
from ..models.responses import LoadOutcome, LoadResult, ResponseClip

logger = logging.getLogger(__name__)


def parse_response_clips(payload: Any) -> List[ResponseClip]:
    """Validate a response-list payload; anything unusable counts as no clips."""
    if not isinstance(payload, list):
        if payload is not None:
            logger.warning(f"Response list payload is not a list: {type(payload).__name__}")
        return []

    clips = []
    for index, item in enumerate(payload):
        try:
            clips.append(ResponseClip.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed response #{index + 1}: {e.error_count()} errors")
    return clips


class ResponseLoader:
    """Holds the current response-clip collection and replaces it on every load."""

    def __init__(self, client: VoiceCloneClient, publisher: Optional[EventPublisher] = None):
        self.client = client
        self.publisher = publisher or EventPublisher()
        self.responses: Tuple[ResponseClip, ...] = ()
        self.last_result: Optional[LoadResult] = None
        self.is_loading = False

    async def load(self, voice_id: str, raise_on_error: bool = False) -> LoadResult:
        """Fetch the full response list for ``voice_id``.

        An empty or malformed payload is an EMPTY result (responses may not
        be generated yet). Network and server errors give a FAILED result,
        or raise ``LoadFailed`` when ``raise_on_error`` is set. Either way the
        previous collection is dropped.
        """
        logger.info(f"Loading chat responses for voiceId: {voice_id}")
        self.is_loading = True
        try:
            payload = await self.client.get_chat_responses(voice_id)
        except ApiRequestFailed as e:
            if e.category == "payload":
                logger.warning(f"Unreadable response list for {voice_id}: {e.detail}")
                payload = None
            else:
                return self._fail(voice_id, e, raise_on_error)
        finally:
            self.is_loading = False

        clips = parse_response_clips(payload)
        self.responses = tuple(clips)
        outcome = LoadOutcome.LOADED if clips else LoadOutcome.EMPTY
        result = LoadResult(voice_id=voice_id, outcome=outcome, responses=self.responses)
        self.last_result = result

        if clips:
            logger.info(f"Successfully loaded {len(clips)} chat responses")
            for index, clip in enumerate(clips, 1):
                logger.debug(f"   {index}. \"{clip.question}\" (ID: {clip.id})")
        else:
            logger.info("No responses available yet")
        self.publisher.publish(events.RESPONSES_LOADED, result)
        return result

    def _fail(self, voice_id: str, error: ApiRequestFailed, raise_on_error: bool) -> LoadResult:
        logger.error(f"Error loading responses for {voice_id}: {error.detail}")
        self.responses = ()
        result = LoadResult(voice_id=voice_id, outcome=LoadOutcome.FAILED, error=error.detail)
        self.last_result = result
        self.publisher.publish(events.RESPONSES_FAILED, result)
        if raise_on_error:
            raise LoadFailed(f"Failed to load chat responses: {error.detail}", voice_id=voice_id) from error
        return result

    def get(self, clip_id: int) -> Optional[ResponseClip]:
        """Find a loaded clip by id."""
        for clip in self.responses:
            if clip.id == clip_id:
                return clip
        return None

    def clear(self) -> None:
        """Forget the loaded collection."""
        self.responses = ()
        self.last_result = None
