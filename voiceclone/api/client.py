"""Async HTTP client for the voice-cloning backend."""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp
from pydantic import ValidationError

from ..errors import ApiRequestFailed
from ..models.audio import RecordedClip
from ..models.jobs import UploadJob

logger = logging.getLogger(__name__)


def _error_detail(body: bytes) -> str:
    try:
        payload = json.loads(body)
    except ValueError:
        return body.decode('utf-8', errors='replace').strip()
    if isinstance(payload, dict):
        return str(payload.get('message') or payload.get('detail') or payload)
    return str(payload)


class BaseApiClient:
    """Shared aiohttp session handling and error translation.

    Every failure leaves as ``ApiRequestFailed`` with a category
    ("connection", "timeout", "http", "payload") so services can map it to
    their own error type.
    """

    def __init__(self, base_url: str = "http://localhost:3000", timeout: float = 30.0,
                 session: Optional[aiohttp.ClientSession] = None):
        """Initialize the HTTP client.

        Args:
            base_url: Backend base URL
            timeout: Total timeout per request in seconds
            session: Existing session to share; the client will not close it
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def url_for(self, path: str) -> str:
        if path.startswith(('http://', 'https://')):
            return path
        if not path.startswith('/'):
            path = '/' + path
        return f"{self.base_url}{path}"

    async def _request(self, method: str, path: str, **kwargs) -> bytes:
        """Execute a request and return the raw body of a successful response."""
        url = self.url_for(path)
        try:
            async with self._get_session().request(method, url, **kwargs) as response:
                body = await response.read()
                if response.status >= 400:
                    detail = _error_detail(body) or response.reason
                    raise ApiRequestFailed(
                        f"{method} {path} failed: {response.status} {detail}",
                        category="http",
                        status=response.status,
                    )
                return body
        except asyncio.TimeoutError:
            raise ApiRequestFailed(f"{method} {path} timed out", category="timeout") from None
        except aiohttp.ClientError as e:
            raise ApiRequestFailed(f"Network error on {method} {path}: {e}", category="connection") from e

    async def _request_json(self, method: str, path: str, **kwargs) -> Any:
        body = await self._request(method, path, **kwargs)
        if not body.strip():
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise ApiRequestFailed(f"Invalid JSON from {method} {path}: {e}", category="payload") from e


class VoiceCloneClient(BaseApiClient):
    """Client for the ``/audio`` endpoints."""

    async def upload_audio(self, clip: RecordedClip) -> int:
        """Upload a clip as multipart field ``file``; returns the new job id."""
        form = aiohttp.FormData()
        form.add_field('file', clip.data, filename=clip.filename, content_type=clip.mime_type)

        payload = await self._request_json('POST', '/audio/upload', data=form)
        job_id = payload.get('id') if isinstance(payload, dict) else None
        if isinstance(job_id, bool) or not isinstance(job_id, int):
            raise ApiRequestFailed(f"Upload response has no integer id: {payload!r}", category="payload")

        logger.info(f"Audio uploaded successfully, id: {job_id} ({clip.size} bytes)")
        return job_id

    async def get_status(self, job_id: int) -> UploadJob:
        """Fetch the current state of a cloning job."""
        payload = await self._request_json('GET', f'/audio/status/{job_id}')
        if not isinstance(payload, dict):
            raise ApiRequestFailed(f"Status response is not an object: {payload!r}", category="payload")
        try:
            return UploadJob.model_validate({"id": job_id, **payload})
        except ValidationError as e:
            raise ApiRequestFailed(f"Malformed status response: {e}", category="payload") from e

    async def get_chat_responses(self, voice_id: str) -> Any:
        """Fetch the raw response-clip list for a voice identity."""
        return await self._request_json(
            'GET', '/audio/chat-responses',
            params={'voiceId': voice_id},
            headers={'Accept': 'application/json'},
        )

    async def fetch_audio(self, location: str) -> bytes:
        """Download an audio resource as bytes."""
        data = await self._request('GET', location)
        logger.debug(f"Fetched {len(data)} bytes from {location}")
        return data
