"""Main application entry point for VoiceClone."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Optional
from urllib.parse import urlparse

import click
from pubsub import pub
from rich.console import Console, ConsoleOptions, RenderResult
from rich.live import Live
from rich.table import Table
from rich.text import Text

from . import __version__, events
from .api.client import VoiceCloneClient
from .config import VoiceCloneConfig
from .errors import ApiRequestFailed, PlaybackFailed, ProcessingFailed, VoiceCloneError
from .models.events import PipelineStageEvent
from .models.responses import LoadOutcome, LoadResult
from .playback import CLONED_VOICE, RECORDING_PREVIEW, PlaybackArbiter, PyAudioPlayer
from .services.orchestrator import VoicePipeline
from .services.recording_service import RecordingSessionController
from .services.response_loader import ResponseLoader
from .storage import FileManager
from .ui.surface import TerminalSurface
from .ui.waveform import WaveformRenderer
from .utils import format_time

logger = logging.getLogger(__name__)

console = Console()

STAGE_MESSAGES = {
    "uploading": "Uploading recording...",
    "processing": "Voice cloning in progress...",
    "awaiting_responses": "Voice cloned, waiting for responses to be generated...",
    "loading_responses": "Loading chat responses...",
    "ready": "Responses ready",
    "failed": "Voice cloning failed",
}


def setup_logging(config: VoiceCloneConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voiceclone.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("VoiceClone starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


class RecordingView:
    """Live timer line plus the terminal waveform."""

    def __init__(self, controller: RecordingSessionController, surface: TerminalSurface):
        self.controller = controller
        self.surface = surface

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        elapsed = format_time(self.controller.elapsed_seconds)
        limit = format_time(self.controller.max_seconds)
        yield Text.assemble(("● REC ", "bold red"), f"{elapsed} / {limit}",
                            ("   press Enter to stop", "dim"))
        yield self.surface


def responses_table(result: LoadResult) -> Table:
    table = Table(title=f"Chat responses for {result.voice_id}")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Question")
    table.add_column("Audio", style="dim")
    for clip in result.responses:
        table.add_row(str(clip.id), clip.question, clip.audio_url)
    return table


def show_load_result(result: LoadResult) -> None:
    if result.outcome is LoadOutcome.LOADED:
        console.print(responses_table(result))
    elif result.outcome is LoadOutcome.EMPTY:
        console.print("[yellow]No responses available yet. Try again in a moment.[/yellow]")
    else:
        console.print(f"[red]Could not load chat responses: {result.error}[/red]")


def _watch_stdin_for_enter(loop: asyncio.AbstractEventLoop, pressed: asyncio.Event) -> bool:
    def on_input() -> None:
        sys.stdin.readline()
        pressed.set()

    try:
        loop.add_reader(sys.stdin.fileno(), on_input)
    except (NotImplementedError, ValueError, OSError):
        logger.debug("Enter-to-stop unavailable on this stdin")
        return False
    return True


async def record_clip(config: VoiceCloneConfig, duration: Optional[int]):
    """Record until Enter, ``duration`` seconds or the ceiling; returns the clip."""
    surface = TerminalSurface(
        width=config.get('ui.width', 800),
        height=config.get('ui.height', 120),
        columns=min(console.width, 100),
    )
    refresh_hz = config.get('ui.refresh_hz', 30)
    renderer = WaveformRenderer(surface, refresh_hz=refresh_hz, mode=config.get('ui.mode', 'waveform'))
    controller = RecordingSessionController.from_config(config, renderer=renderer)

    await controller.start()

    loop = asyncio.get_running_loop()
    pressed = asyncio.Event()
    watching = _watch_stdin_for_enter(loop, pressed)

    waiters = [
        asyncio.ensure_future(controller.wait_until_stopped()),
        asyncio.ensure_future(pressed.wait()),
    ]
    if duration:
        waiters.append(asyncio.ensure_future(asyncio.sleep(duration)))

    try:
        with Live(RecordingView(controller, surface), console=console,
                  refresh_per_second=refresh_hz, transient=True):
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            clip = await controller.stop()
    finally:
        if watching:
            loop.remove_reader(sys.stdin.fileno())
        for waiter in waiters:
            waiter.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)

    console.print(f"Recorded {format_time(controller.elapsed_seconds)} ({clip.size} bytes)")
    return clip


def _player(config: VoiceCloneConfig) -> PyAudioPlayer:
    return PyAudioPlayer(config.get('audio.chunk_size', 1024))


def cloned_extension(url: str) -> str:
    """File suffix of the cloned-voice URL; the backend serves MP3 by default."""
    return Path(urlparse(url).path).suffix or ".mp3"


async def play_to_end(arbiter: PlaybackArbiter, starting: Awaitable[bool]) -> None:
    """Await a ``play``/``play_bytes`` call and block until that clip is done."""
    try:
        if await starting:
            await arbiter.wait_until_finished()
    finally:
        arbiter.stop()


async def preview_clip(config: VoiceCloneConfig, clip) -> None:
    """Play the just-recorded sample back before it is uploaded."""
    arbiter = PlaybackArbiter(_player(config))
    console.print("▶ Playing back your recording...")
    try:
        await play_to_end(arbiter, arbiter.play_bytes(RECORDING_PREVIEW, clip.data))
    except PlaybackFailed as e:
        console.print(f"[yellow]Preview unavailable: {e.detail}[/yellow]")


async def play_cloned(config: VoiceCloneConfig, client: VoiceCloneClient, cloned_url: str) -> None:
    arbiter = PlaybackArbiter(_player(config), client.fetch_audio)
    console.print("▶ Cloned voice")
    await play_to_end(arbiter, arbiter.play(CLONED_VOICE, cloned_url))


async def run_record(config: VoiceCloneConfig, duration: Optional[int], save: Optional[str],
                     upload: bool, preview: bool = False, cloned: bool = False) -> None:
    clip = await record_clip(config, duration)

    if preview:
        await preview_clip(config, clip)

    if save is not None:
        manager = FileManager(config.get_data_directory())
        path = manager.save_clip(clip, filename=save or None)
        console.print(f"Saved recording to [bold]{path}[/bold]")

    if not upload:
        return

    def on_stage(event: PipelineStageEvent) -> None:
        message = STAGE_MESSAGES.get(event.stage.value)
        if message:
            console.print(f"[cyan]{message}[/cyan]")

    # pypubsub keeps weak references; on_stage stays alive for this scope.
    pub.subscribe(on_stage, events.PIPELINE_STAGE)
    try:
        async with VoiceCloneClient(config.get('api.base_url'), config.get('api.timeout', 30.0)) as client:
            pipeline = VoicePipeline.from_config(config, client)
            result = await pipeline.run(clip)

            if cloned:
                if pipeline.job.cloned_url:
                    try:
                        await play_cloned(config, client, pipeline.job.cloned_url)
                    except PlaybackFailed as e:
                        console.print(f"[yellow]{e.detail}[/yellow]")
                else:
                    console.print("[yellow]The backend returned no cloned audio for this job.[/yellow]")
    finally:
        pub.unsubscribe(on_stage, events.PIPELINE_STAGE)

    console.print(f"Voice ID: [bold]{result.voice_id}[/bold]")
    show_load_result(result)


async def run_responses(config: VoiceCloneConfig, voice_id: str) -> None:
    async with VoiceCloneClient(config.get('api.base_url'), config.get('api.timeout', 30.0)) as client:
        result = await ResponseLoader(client).load(voice_id)
    show_load_result(result)


async def run_play(config: VoiceCloneConfig, voice_id: str, clip_id: int) -> None:
    async with VoiceCloneClient(config.get('api.base_url'), config.get('api.timeout', 30.0)) as client:
        loader = ResponseLoader(client)
        await loader.load(voice_id, raise_on_error=True)
        clip = loader.get(clip_id)
        if clip is None:
            raise click.ClickException(f"No response {clip_id} for voice {voice_id}")

        arbiter = PlaybackArbiter(_player(config), client.fetch_audio)
        console.print(f"▶ {clip.question}")
        await play_to_end(arbiter, arbiter.play(clip.id, clip.audio_url))


async def run_play_cloned(config: VoiceCloneConfig, job_id: int, save: Optional[str], play: bool) -> None:
    async with VoiceCloneClient(config.get('api.base_url'), config.get('api.timeout', 30.0)) as client:
        try:
            job = await client.get_status(job_id)
        except ApiRequestFailed as e:
            raise ProcessingFailed(f"Status check failed: {e.detail}", job_id=job_id) from e
        if not job.cloned_url:
            raise click.ClickException(f"Job {job_id} has no cloned audio (status: {job.status.value})")

        if save is not None:
            try:
                data = await client.fetch_audio(job.cloned_url)
            except ApiRequestFailed as e:
                raise PlaybackFailed(f"Failed to download cloned voice: {e.detail}",
                                     clip_id=CLONED_VOICE) from e
            manager = FileManager(config.get_data_directory())
            path = manager.save_cloned_audio(data, save or None, cloned_extension(job.cloned_url))
            console.print(f"Saved cloned voice to [bold]{path}[/bold]")

        if play:
            await play_cloned(config, client, job.cloned_url)


def _load_config(config_path: Optional[str], log_level: Optional[str]) -> VoiceCloneConfig:
    config = VoiceCloneConfig(config_path)
    setup_logging(config, log_level or config.get('logging.level', 'INFO'))
    return config


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
    except VoiceCloneError as e:
        logger.error(f"Application error: {e.detail}")
        console.print(f"[red]❌ Error: {e.detail}[/red]")
        sys.exit(1)


config_option = click.option(
    "--config", "config_path", type=click.Path(dir_okay=False),
    help="Path to configuration YAML file (default: built-in settings)")
log_level_option = click.option(
    "--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set logging level (default: from config)")


@click.group()
@click.version_option(__version__, prog_name="VoiceClone")
def cli() -> None:
    """VoiceClone - record your voice, clone it, listen to the answers."""


@cli.command()
@config_option
@log_level_option
@click.option("--duration", type=click.IntRange(min=1), help="Stop automatically after N seconds")
@click.option("--save", is_flag=False, flag_value="", default=None, metavar="[NAME]",
              help="Also save the WAV under <data>/recordings (optional file name)")
@click.option("--no-upload", is_flag=True, help="Record (and save) only, skip voice cloning")
@click.option("--preview", is_flag=True, help="Play the recording back before uploading it")
@click.option("--play-cloned", is_flag=True, help="Play the cloned voice once cloning completes")
@click.option("--spectrum", is_flag=True, help="Show the frequency spectrum instead of the waveform")
def record(config_path, log_level, duration, save, no_upload, preview, play_cloned, spectrum) -> None:
    """Record a voice sample, upload it and list the generated responses."""
    config = _load_config(config_path, log_level)
    if spectrum:
        config.set('ui.mode', 'spectrum')
    _run(run_record(config, duration, save, upload=not no_upload, preview=preview, cloned=play_cloned))


@cli.command()
@config_option
@log_level_option
@click.argument("voice_id")
def responses(config_path, log_level, voice_id) -> None:
    """List the response clips generated for VOICE_ID."""
    config = _load_config(config_path, log_level)
    _run(run_responses(config, voice_id))


@cli.command()
@config_option
@log_level_option
@click.argument("voice_id")
@click.argument("clip_id", type=int)
def play(config_path, log_level, voice_id, clip_id) -> None:
    """Play response CLIP_ID of VOICE_ID."""
    config = _load_config(config_path, log_level)
    _run(run_play(config, voice_id, clip_id))


@cli.command("play-cloned")
@config_option
@log_level_option
@click.argument("job_id", type=int)
@click.option("--save", is_flag=False, flag_value="", default=None, metavar="[NAME]",
              help="Also download the cloned audio to <data>/recordings (optional file name)")
@click.option("--no-play", is_flag=True, help="Only download, do not play")
def play_cloned_command(config_path, log_level, job_id, save, no_play) -> None:
    """Play (and optionally save) the cloned voice of upload job JOB_ID."""
    config = _load_config(config_path, log_level)
    _run(run_play_cloned(config, job_id, save, play=not no_play))


def main() -> None:
    """Main entry point for VoiceClone application."""
    cli()


if __name__ == "__main__":
    main()
