"""Pytest configuration and fixtures for VoiceClone tests."""

import io
import logging
import tempfile
import wave
from typing import Any, Dict, List
from unittest.mock import Mock, patch

import numpy as np
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from voiceclone.api.avatar import AvatarClient
from voiceclone.api.client import VoiceCloneClient


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: multi-component tests against a fake backend")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


def make_wav(pcm: bytes, sample_rate: int = 16000, channels: int = 1) -> bytes:
    """Wrap 16-bit PCM in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # Generate 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate  # ~0.064 seconds
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def sample_wav_bytes(sample_audio_chunk):
    """A short WAV clip (~0.3 s) as served by the backend."""
    return make_wav(sample_audio_chunk * 5)


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None
        mock_stream.write.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_sample_size.return_value = 2
        mock_pyaudio_instance.get_format_from_width.return_value = 8
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'name': 'Mock Microphone', 'index': 0, 'maxInputChannels': 1,
        }

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=16000):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = np.sin(2 * np.pi * 440 * t)
        elif pattern == "noise":
            wave_data = np.random.uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        audio_data = (wave_data * 32767).astype(np.int16)
        return audio_data.tobytes()

    return generate_audio


class FakeSleep:
    """Stands in for ``asyncio.sleep``; records requested delays without waiting."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


class FakeBackend:
    """In-process stand-in for the voice-cloning and avatar HTTP service.

    Tests script the replies by setting attributes; every request is
    recorded in ``requests`` as ``(method, path)``.
    """

    def __init__(self):
        self.upload_status = 200
        self.upload_body: Any = {"id": 42}
        self.statuses: List[Dict[str, Any]] = [{"status": "completed", "voiceId": "v1"}]
        self.chat_status = 200
        self.chat_body: Any = []
        self.audio: Dict[str, bytes] = {}
        self.animation_statuses: List[str] = ["completed"]

        self.requests: List[tuple] = []
        self.uploads: List[Dict[str, Any]] = []
        self.status_checks = 0
        self.animation_checks = 0
        self.chat_queries: List[str] = []
        self.avatar_uploads: List[Dict[str, Any]] = []
        self.animate_requests: List[Dict[str, Any]] = []

        self.app = web.Application(middlewares=[self._record])
        self.app.router.add_post('/audio/upload', self.upload)
        self.app.router.add_get('/audio/status/{job_id}', self.status)
        self.app.router.add_get('/audio/chat-responses', self.chat_responses)
        self.app.router.add_get('/media/{name}', self.media)
        self.app.router.add_post('/avatar/upload', self.avatar_upload)
        self.app.router.add_post('/avatar/animate', self.avatar_animate)
        self.app.router.add_get('/avatar/{avatar_id}/animations', self.avatar_animations)
        self.app.router.add_get('/avatar/animations/{animation_id}/status', self.animation_status)

        self.base_url = ""

    @web.middleware
    async def _record(self, request, handler):
        self.requests.append((request.method, request.path))
        return await handler(request)

    @staticmethod
    def _reply(body: Any, status: int = 200) -> web.Response:
        if isinstance(body, str):
            return web.Response(text=body, status=status, content_type='application/json')
        return web.json_response(body, status=status)

    async def upload(self, request):
        form = await request.post()
        field = form.get('file')
        if field is not None and hasattr(field, 'file'):
            self.uploads.append({
                'filename': field.filename,
                'content_type': field.content_type,
                'data': field.file.read(),
            })
        return self._reply(self.upload_body, self.upload_status)

    async def status(self, request):
        job_id = int(request.match_info['job_id'])
        body = self.statuses[min(self.status_checks, len(self.statuses) - 1)]
        self.status_checks += 1
        return web.json_response({"id": job_id, **body})

    async def chat_responses(self, request):
        self.chat_queries.append(request.query.get('voiceId'))
        return self._reply(self.chat_body, self.chat_status)

    async def media(self, request):
        data = self.audio.get(request.match_info['name'])
        if data is None:
            return web.json_response({"message": "Not found"}, status=404)
        return web.Response(body=data, content_type='audio/wav')

    async def avatar_upload(self, request):
        form = await request.post()
        image = form.get('image')
        self.avatar_uploads.append({
            'name': form.get('name'),
            'description': form.get('description'),
            'image': image.file.read() if hasattr(image, 'file') else None,
        })
        return web.json_response({
            "id": 7, "name": form.get('name'), "description": form.get('description'),
            "imageUrl": "/uploads/avatars/7.jpg",
        })

    async def avatar_animate(self, request):
        body = await request.json()
        self.animate_requests.append(body)
        return web.json_response({"id": 11, "avatarId": body["avatarId"], "text": body["text"],
                                  "status": "pending"})

    async def avatar_animations(self, request):
        avatar_id = int(request.match_info['avatar_id'])
        return web.json_response([
            {"id": 11, "avatarId": avatar_id, "text": "Hello", "status": "completed",
             "videoUrl": "/uploads/animations/11.mp4"},
        ])

    async def animation_status(self, request):
        animation_id = int(request.match_info['animation_id'])
        status = self.animation_statuses[min(self.animation_checks, len(self.animation_statuses) - 1)]
        self.animation_checks += 1
        return web.json_response({"id": animation_id, "avatarId": 7, "status": status})


@pytest_asyncio.fixture
async def fake_backend():
    """Run a FakeBackend on a local port for the duration of a test."""
    backend = FakeBackend()
    server = TestServer(backend.app)
    await server.start_server()
    backend.base_url = f"http://{server.host}:{server.port}"
    try:
        yield backend
    finally:
        await server.close()


@pytest_asyncio.fixture
async def api_client(fake_backend):
    client = VoiceCloneClient(fake_backend.base_url, timeout=5.0)
    try:
        yield client
    finally:
        await client.close()


@pytest_asyncio.fixture
async def avatar_client(fake_backend):
    client = AvatarClient(fake_backend.base_url, timeout=5.0)
    try:
        yield client
    finally:
        await client.close()
