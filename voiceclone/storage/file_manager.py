"""File management module for locally saved recordings."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.audio import RecordedClip

logger = logging.getLogger(__name__)


class FileManager:
    """Manages the data directory: saved recordings and log files."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.recordings_dir = self.data_dir / "recordings"
        self.logs_dir = self.data_dir / "logs"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.recordings_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    @staticmethod
    def default_filename(now: Optional[datetime] = None) -> str:
        """Timestamped download name, e.g. ``voice-recording-2024-05-01T10-30-00.wav``."""
        now = now or datetime.now()
        return f"voice-recording-{now.strftime('%Y-%m-%dT%H-%M-%S')}.wav"

    def save_clip(self, clip: RecordedClip, filename: Optional[str] = None) -> str:
        """Save a recorded clip to the recordings directory and return its path.

        Args:
            clip: Finalized clip to write
            filename: Optional custom filename; ``.wav`` is appended if missing

        Returns:
            Full path to saved audio file
        """
        if filename is None:
            filename = self.default_filename()

        if not filename.endswith('.wav'):
            filename += '.wav'

        audio_file_path = self.recordings_dir / filename

        try:
            audio_file_path.write_bytes(clip.data)
        except OSError as e:
            logger.error(f"Error saving audio file: {e}")
            raise

        logger.info(f"Audio file saved: {audio_file_path} ({clip.size} bytes)")
        return str(audio_file_path)

    def save_cloned_audio(self, data: bytes, filename: Optional[str] = None,
                          extension: str = ".mp3") -> str:
        """Save downloaded cloned-voice audio next to the recordings.

        ``extension`` is appended when ``filename`` has no suffix; the
        default name is ``cloned-voice-<timestamp><extension>``.
        """
        if not extension.startswith('.'):
            extension = '.' + extension
        if not filename:
            filename = f"cloned-voice-{datetime.now().strftime('%Y-%m-%dT%H-%M-%S')}"
        if not Path(filename).suffix:
            filename += extension

        audio_file_path = self.recordings_dir / Path(filename).name

        try:
            audio_file_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Error saving cloned audio: {e}")
            raise

        logger.info(f"Cloned audio saved: {audio_file_path} ({len(data)} bytes)")
        return str(audio_file_path)

    def list_recordings(self) -> List[str]:
        """List saved recording filenames, oldest first."""
        recordings = sorted(path.name for path in self.recordings_dir.glob("*.wav"))
        logger.debug(f"Found {len(recordings)} recordings")
        return recordings

    def get_storage_stats(self) -> Dict[str, Any]:
        """Get storage usage statistics.

        Returns:
            Dictionary with storage statistics
        """
        total_size = 0
        audio_files = 0
        for file_path in self.recordings_dir.glob("*.wav"):
            total_size += file_path.stat().st_size
            audio_files += 1

        return {
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "audio_files": audio_files,
            "data_directory": str(self.data_dir),
        }
