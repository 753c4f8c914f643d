"""Local storage for recorded clips."""

from .file_manager import FileManager

__all__ = ["FileManager"]
