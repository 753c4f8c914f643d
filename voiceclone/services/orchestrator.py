"""Upload, status polling and the upload -> poll -> load pipeline."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .. import events
from ..api.client import VoiceCloneClient
from ..audio.encoder import ClipEncoder, PassThroughEncoder
from ..config import VoiceCloneConfig
from ..errors import ApiRequestFailed, ProcessingFailed, UploadFailed
from ..events import EventPublisher
from ..models.audio import RecordedClip
from ..models.events import PipelineStage, PipelineStageEvent
from ..models.jobs import JobStatus, UploadJob
from ..models.responses import LoadResult
from .polling import PollLimitReached, poll_until_terminal
from .response_loader import ResponseLoader

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class UploadOrchestrator:
    """Sends a clip to the backend and follows the resulting job."""

    def __init__(
        self,
        client: VoiceCloneClient,
        poll_interval: float = 2.0,
        max_poll_attempts: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize upload orchestrator.

        Args:
            client: Backend client
            poll_interval: Seconds between status checks
            max_poll_attempts: Optional cap on status checks; None polls forever
            sleep: Awaitable sleep used between checks
        """
        self.client = client
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.sleep = sleep

    async def upload(self, clip: RecordedClip) -> UploadJob:
        """Upload ``clip``; a failure leaves no job behind and may simply be retried.

        Raises:
            UploadFailed: On a non-success status or network failure
        """
        logger.info(f"Uploading clip: {clip.size} bytes ({clip.mime_type})")
        try:
            job_id = await self.client.upload_audio(clip)
        except ApiRequestFailed as e:
            logger.error(f"Upload error: {e.detail}")
            raise UploadFailed(f"Upload failed: {e.detail}") from e
        return UploadJob(id=job_id, status=JobStatus.PENDING)

    async def poll_status(self, job_id: int,
                          on_update: Optional[Callable[[UploadJob], None]] = None) -> UploadJob:
        """Poll the job every ``poll_interval`` seconds until it is terminal.

        Returns the completed job, which carries the voice identity.

        Raises:
            ProcessingFailed: If the job fails, a status check fails, or the
                optional attempt cap runs out
        """
        try:
            job = await poll_until_terminal(
                check=lambda: self.client.get_status(job_id),
                is_terminal=lambda j: j.status.is_terminal,
                interval=self.poll_interval,
                on_update=on_update,
                max_attempts=self.max_poll_attempts,
                sleep=self.sleep,
            )
        except ApiRequestFailed as e:
            logger.error(f"Status polling error for job {job_id}: {e.detail}")
            raise ProcessingFailed(f"Status check failed: {e.detail}", job_id=job_id) from e
        except PollLimitReached as e:
            raise ProcessingFailed(str(e), job_id=job_id) from e

        if job.status is JobStatus.FAILED:
            logger.error(f"Voice cloning failed for job {job_id}")
            raise ProcessingFailed("Voice cloning failed", job_id=job_id)
        if not job.voice_id:
            raise ProcessingFailed("Job completed without a voice identity", job_id=job_id)

        logger.info(f"Voice cloning completed for job {job_id}: voiceId={job.voice_id}")
        return job


class VoicePipeline:
    """Runs encode -> upload -> poll -> grace delay -> load as one task.

    The grace delay after completion is part of the backend contract:
    response clips are still being generated when the job reports done.
    """

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        loader: ResponseLoader,
        encoder: Optional[ClipEncoder] = None,
        publisher: Optional[EventPublisher] = None,
        response_delay: float = 25.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.loader = loader
        self.encoder = encoder or PassThroughEncoder()
        self.publisher = publisher or EventPublisher()
        self.response_delay = response_delay
        self.sleep = sleep

        self.stage = PipelineStage.IDLE
        self.job: Optional[UploadJob] = None
        self.error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: VoiceCloneConfig, client: VoiceCloneClient,
                    publisher: Optional[EventPublisher] = None,
                    encoder: Optional[ClipEncoder] = None) -> "VoicePipeline":
        publisher = publisher or EventPublisher()
        orchestrator = UploadOrchestrator(
            client,
            poll_interval=config.get('api.poll_interval', 2.0),
            max_poll_attempts=config.get('api.max_poll_attempts'),
        )
        return cls(
            orchestrator=orchestrator,
            loader=ResponseLoader(client, publisher=publisher),
            encoder=encoder,
            publisher=publisher,
            response_delay=config.get('api.response_delay', 25.0),
        )

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def _set_stage(self, stage: PipelineStage, error: Optional[str] = None) -> None:
        self.stage = stage
        logger.info(f"Pipeline stage -> {stage.value}")
        self.publisher.publish(events.PIPELINE_STAGE, PipelineStageEvent(
            stage=stage,
            job_id=self.job.id if self.job else None,
            voice_id=self.job.voice_id if self.job else None,
            error=error,
        ))

    def _on_job_update(self, job: UploadJob) -> None:
        self.job = job
        logger.debug(f"Status check result: job {job.id} is {job.status.value}")

    def start(self, clip: RecordedClip) -> asyncio.Task:
        """Run the pipeline as its own task; stopping a recording never cancels it."""
        self._task = asyncio.ensure_future(self.run(clip))
        return self._task

    async def run(self, clip: RecordedClip) -> LoadResult:
        """Drive a clip all the way to a loaded response collection.

        Raises:
            UploadFailed: Upload did not succeed
            ProcessingFailed: Backend failed the job or polling broke
        """
        self.job = None
        self.error = None
        try:
            self._set_stage(PipelineStage.UPLOADING)
            encoded = await self.encoder.encode(clip)
            self.job = await self.orchestrator.upload(encoded)

            self._set_stage(PipelineStage.PROCESSING)
            self.job = await self.orchestrator.poll_status(self.job.id, on_update=self._on_job_update)

            self._set_stage(PipelineStage.AWAITING_RESPONSES)
            logger.info(f"Waiting {self.response_delay:g} seconds for voice responses to be generated...")
            await self.sleep(self.response_delay)

            self._set_stage(PipelineStage.LOADING_RESPONSES)
            result = await self.loader.load(self.job.voice_id)
        except (UploadFailed, ProcessingFailed) as e:
            self.error = e.detail
            self._set_stage(PipelineStage.FAILED, error=e.detail)
            raise

        self._set_stage(PipelineStage.READY, error=result.error)
        return result
