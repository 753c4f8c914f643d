"""Integration tests for the record -> upload -> poll -> load -> play workflow."""

import asyncio
import io
import wave

import pytest
from pubsub import pub

from voiceclone import events
from voiceclone.audio.capture import CaptureSource
from voiceclone.errors import ProcessingFailed, UploadFailed
from voiceclone.events import EventPublisher
from voiceclone.models.events import PipelineStage
from voiceclone.models.responses import LoadOutcome
from voiceclone.models.session import RecordingState
from voiceclone.playback import PlaybackArbiter, PyAudioPlayer
from voiceclone.services.orchestrator import UploadOrchestrator, VoicePipeline
from voiceclone.services.recording_service import RecordingSessionController
from voiceclone.services.response_loader import ResponseLoader
from voiceclone.storage import FileManager
from voiceclone.ui.surface import CanvasSurface
from voiceclone.ui.waveform import WaveformRenderer


async def record(sample_audio_chunk, chunks=5):
    controller = RecordingSessionController(
        source_factory=CaptureSource,
        renderer=WaveformRenderer(CanvasSurface(), refresh_hz=200),
        tick_seconds=0.01,
    )
    await controller.start()
    for _ in range(chunks):
        controller.source._on_audio(sample_audio_chunk, 1024, {}, 0)
    await asyncio.sleep(0.03)
    clip = await controller.stop()
    assert controller.state is RecordingState.STOPPED
    return clip


def make_pipeline(client, fake_sleep, publisher=None):
    publisher = publisher or EventPublisher()
    return VoicePipeline(
        orchestrator=UploadOrchestrator(client, poll_interval=2.0, sleep=fake_sleep),
        loader=ResponseLoader(client, publisher=publisher),
        publisher=publisher,
        response_delay=25.0,
        sleep=fake_sleep,
    )


@pytest.mark.integration
class TestVoicePipelineIntegration:
    """End-to-end flow against the in-process fake backend."""

    @pytest.mark.asyncio
    async def test_complete_workflow(self, mock_pyaudio, sample_audio_chunk, sample_wav_bytes,
                                     fake_backend, api_client, fake_sleep, temp_data_dir):
        fake_backend.statuses = [
            {"status": "processing"},
            {"status": "processing"},
            {"status": "completed", "voiceId": "v1"},
        ]
        fake_backend.chat_body = [
            {"id": 1, "question": "What's your favorite food?", "audioUrl": "/media/1.wav"},
            {"id": 2, "question": "Where did you grow up?", "audioUrl": "/media/2.wav"},
            {"id": 3, "question": "What makes you happy?", "audioUrl": "/media/3.wav"},
        ]
        for i in (1, 2, 3):
            fake_backend.audio[f"{i}.wav"] = sample_wav_bytes

        stage_events = []

        def on_stage(event):
            stage_events.append(event.stage)

        pub.subscribe(on_stage, events.PIPELINE_STAGE)
        try:
            clip = await record(sample_audio_chunk)
            saved = FileManager(temp_data_dir).save_clip(clip)

            result = await make_pipeline(api_client, fake_sleep).run(clip)
        finally:
            pub.unsubscribe(on_stage, events.PIPELINE_STAGE)

        with open(saved, 'rb') as f:
            assert f.read() == clip.data
        with wave.open(io.BytesIO(fake_backend.uploads[0]['data']), 'rb') as wf:
            assert wf.readframes(wf.getnframes()) == sample_audio_chunk * 5

        assert result.outcome is LoadOutcome.LOADED
        assert [r.id for r in result.responses] == [1, 2, 3]
        assert fake_backend.status_checks == 3
        assert fake_backend.chat_queries == ["v1"]
        assert fake_sleep.calls == [2.0, 2.0, 25.0]
        assert stage_events[0] is PipelineStage.UPLOADING
        assert stage_events[-1] is PipelineStage.READY

        # Relative locations cannot be opened directly, so every clip goes
        # through the download fallback.
        arbiter = PlaybackArbiter(PyAudioPlayer(), api_client.fetch_audio)
        for response in result.responses:
            assert await arbiter.play(response.id, response.audio_url) is True
            assert arbiter.active_clip_id == response.id
        assert fake_backend.requests.count(('GET', '/media/3.wav')) == 1

        for _ in range(100):
            if not arbiter.is_playing:
                break
            await asyncio.sleep(0.02)
        assert arbiter.active_clip_id is None
        arbiter.stop()

    @pytest.mark.asyncio
    async def test_backend_reports_failure(self, mock_pyaudio, sample_audio_chunk,
                                           fake_backend, api_client, fake_sleep):
        fake_backend.statuses = [{"status": "processing"}, {"status": "failed"}]
        pipeline = make_pipeline(api_client, fake_sleep)

        clip = await record(sample_audio_chunk)
        with pytest.raises(ProcessingFailed):
            await pipeline.run(clip)

        assert pipeline.stage is PipelineStage.FAILED
        assert fake_backend.chat_queries == []
        assert ('GET', '/audio/chat-responses') not in fake_backend.requests

    @pytest.mark.asyncio
    async def test_upload_rejected_then_retried(self, mock_pyaudio, sample_audio_chunk,
                                                fake_backend, api_client, fake_sleep):
        fake_backend.upload_status = 413
        fake_backend.upload_body = {"message": "File too large"}
        pipeline = make_pipeline(api_client, fake_sleep)
        clip = await record(sample_audio_chunk)

        with pytest.raises(UploadFailed) as exc_info:
            await pipeline.run(clip)
        assert "File too large" in exc_info.value.detail
        assert fake_backend.status_checks == 0

        fake_backend.upload_status = 200
        fake_backend.upload_body = {"id": 43}
        result = await pipeline.run(clip)

        assert result.voice_id == "v1"
        assert pipeline.job.id == 43

    @pytest.mark.asyncio
    async def test_responses_not_generated_yet(self, fake_backend, api_client):
        loader = ResponseLoader(api_client)

        empty = await loader.load("v1")
        fake_backend.chat_status = 502
        fake_backend.chat_body = {"message": "Bad gateway"}
        failed = await loader.load("v1")

        assert empty.outcome is LoadOutcome.EMPTY
        assert failed.outcome is LoadOutcome.FAILED
        assert "Bad gateway" in failed.error
