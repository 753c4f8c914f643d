"""Unit tests for the command-line entry point and console helpers."""

import logging
from pathlib import Path

import click
import pytest
from click.testing import CliRunner
from rich.console import Console

from voiceclone import main as main_module
from voiceclone.config import VoiceCloneConfig
from voiceclone.errors import PlaybackFailed
from voiceclone.main import cli, responses_table, setup_logging, show_load_result
from voiceclone.models.audio import RecordedClip
from voiceclone.models.responses import LoadOutcome, LoadResult, ResponseClip
from voiceclone.playback import CLONED_VOICE, AudioPlayer, PlaybackHandle, PlayerError, PyAudioPlayer
from voiceclone.utils import format_time


@pytest.mark.unit
class TestFormatTime:

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0:00"),
        (7, "0:07"),
        (12.9, "0:12"),
        (60, "1:00"),
        (125, "2:05"),
        (-3, "0:00"),
    ])
    def test_format_time(self, seconds, expected):
        assert format_time(seconds) == expected


@pytest.mark.unit
class TestCli:

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_record_help_lists_options(self):
        result = CliRunner().invoke(cli, ["record", "--help"])

        assert result.exit_code == 0
        for option in ("--duration", "--save", "--no-upload", "--config", "--log-level"):
            assert option in result.output

    def test_play_requires_integer_clip_id(self):
        result = CliRunner().invoke(cli, ["play", "v1", "first"])
        assert result.exit_code != 0

    def test_missing_config_file(self, temp_data_dir):
        result = CliRunner().invoke(cli, ["responses", "v1", "--config", f"{temp_data_dir}/nope.yaml"])
        assert result.exit_code != 0


@pytest.mark.unit
class TestConsoleOutput:

    def test_setup_logging_writes_file(self, temp_data_dir):
        config = VoiceCloneConfig()
        log_file = Path(temp_data_dir) / "logs" / "voiceclone.log"
        config.set('logging.file_path', str(log_file))
        config.set('logging.console_output', False)
        root = logging.getLogger()
        saved = root.handlers[:], root.level

        try:
            setup_logging(config, "DEBUG")
            logging.getLogger("voiceclone.test").debug("hello from test")
            for handler in root.handlers:
                handler.flush()

            assert log_file.exists()
            assert "hello from test" in log_file.read_text()
            assert root.level == logging.DEBUG
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])

    def test_responses_table(self):
        result = LoadResult(voice_id="v1", outcome=LoadOutcome.LOADED, responses=(
            ResponseClip(id=1, question="Favorite food?", audio_url="/media/1.wav"),
        ))
        console = Console(record=True, width=120)
        console.print(responses_table(result))
        output = console.export_text()

        assert "Favorite food?" in output
        assert "v1" in output

    @pytest.mark.parametrize("outcome,expected", [
        (LoadOutcome.EMPTY, "No responses available yet"),
        (LoadOutcome.FAILED, "Could not load chat responses"),
    ])
    def test_show_load_result_messages(self, monkeypatch, outcome, expected):
        console = Console(record=True, width=120)
        monkeypatch.setattr(main_module, "console", console)

        show_load_result(LoadResult(voice_id="v1", outcome=outcome, error="boom"))

        assert expected in console.export_text()


class InstantHandle(PlaybackHandle):
    """Finishes as soon as it starts."""

    def __init__(self, source):
        self.source = source

    @property
    def is_playing(self):
        return False

    def start(self, on_finished):
        on_finished()

    def stop(self):
        pass


class InstantPlayer(AudioPlayer):
    """Records what was played; direct locations always need a download."""

    def __init__(self):
        self.played = []

    def open_location(self, location):
        raise PlayerError(f"not local: {location}")

    def open_bytes(self, data):
        self.played.append(data)
        return InstantHandle(data)


@pytest.fixture
def instant_player(monkeypatch):
    player = InstantPlayer()
    monkeypatch.setattr(main_module, "_player", lambda config: player)
    return player


@pytest.fixture
def backend_config(fake_backend, temp_data_dir):
    config = VoiceCloneConfig()
    config.set('api.base_url', fake_backend.base_url)
    config.set('api.timeout', 5.0)
    config.set('storage.data_directory', temp_data_dir)
    return config


@pytest.mark.unit
class TestClonedVoiceAndPreview:

    def test_cloned_extension(self):
        assert main_module.cloned_extension("https://cdn.example.com/v/clone.wav?sig=1") == ".wav"
        assert main_module.cloned_extension("/media/clone") == ".mp3"

    def test_commands_listed(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert "play-cloned" in result.output

        result = CliRunner().invoke(cli, ["record", "--help"])
        for option in ("--preview", "--play-cloned", "--spectrum"):
            assert option in result.output

    @pytest.mark.asyncio
    async def test_play_cloned_downloads_and_plays(self, fake_backend, backend_config, instant_player,
                                                   temp_data_dir):
        fake_backend.statuses = [{"status": "completed", "voiceId": "v1", "clonedUrl": "/media/clone.mp3"}]
        fake_backend.audio["clone.mp3"] = b'ID3-cloned-voice'

        await main_module.run_play_cloned(backend_config, 42, save="", play=True)

        assert instant_player.played == [b'ID3-cloned-voice']
        saved = list((Path(temp_data_dir) / "recordings").glob("cloned-voice-*.mp3"))
        assert len(saved) == 1
        assert saved[0].read_bytes() == b'ID3-cloned-voice'

    @pytest.mark.asyncio
    async def test_play_cloned_save_only(self, fake_backend, backend_config, instant_player, temp_data_dir):
        fake_backend.statuses = [{"status": "completed", "voiceId": "v1", "clonedUrl": "/media/clone.mp3"}]
        fake_backend.audio["clone.mp3"] = b'ID3'

        await main_module.run_play_cloned(backend_config, 42, save="take-one", play=False)

        assert instant_player.played == []
        assert (Path(temp_data_dir) / "recordings" / "take-one.mp3").read_bytes() == b'ID3'

    @pytest.mark.asyncio
    async def test_play_cloned_without_cloned_audio(self, fake_backend, backend_config, instant_player):
        fake_backend.statuses = [{"status": "processing"}]

        with pytest.raises(click.ClickException, match="no cloned audio"):
            await main_module.run_play_cloned(backend_config, 42, save=None, play=True)

    @pytest.mark.asyncio
    async def test_play_cloned_missing_audio(self, fake_backend, backend_config, instant_player):
        fake_backend.statuses = [{"status": "completed", "voiceId": "v1", "clonedUrl": "/media/gone.mp3"}]

        with pytest.raises(PlaybackFailed) as exc_info:
            await main_module.run_play_cloned(backend_config, 42, save=None, play=True)
        assert exc_info.value.clip_id == CLONED_VOICE

    @pytest.mark.asyncio
    async def test_preview_plays_recorded_clip(self, backend_config, instant_player, sample_wav_bytes,
                                               monkeypatch):
        console = Console(record=True, width=120)
        monkeypatch.setattr(main_module, "console", console)
        clip = RecordedClip(data=sample_wav_bytes, sample_rate=16000, channels=1, duration_seconds=0.3)

        await main_module.preview_clip(backend_config, clip)

        assert instant_player.played == [sample_wav_bytes]
        assert "Playing back your recording" in console.export_text()

    @pytest.mark.asyncio
    async def test_preview_failure_is_reported(self, backend_config, monkeypatch):
        console = Console(record=True, width=120)
        monkeypatch.setattr(main_module, "console", console)
        monkeypatch.setattr(main_module, "_player", lambda config: PyAudioPlayer())
        clip = RecordedClip(data=b'not audio', sample_rate=16000, channels=1, duration_seconds=0.0)

        await main_module.preview_clip(backend_config, clip)

        assert "Preview unavailable" in console.export_text()
