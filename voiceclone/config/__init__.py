"""YAML configuration loader for VoiceClone."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "api": {
        "base_url": "http://localhost:3000",
        "timeout": 30.0,
        "poll_interval": 2.0,
        # Backend keeps generating response clips after a job reports completed.
        "response_delay": 25.0,
        "max_poll_attempts": None,
    },
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "fft_size": 2048,
        "smoothing_time_constant": 0.8,
        "min_decibels": -90.0,
        "max_decibels": -10.0,
    },
    "recording": {
        "max_seconds": 60,
        "tick_seconds": 1.0,
    },
    "ui": {
        "refresh_hz": 30,
        # "waveform" or "spectrum"
        "mode": "waveform",
        "width": 800,
        "height": 120,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/voiceclone.log",
        "console_output": True,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class VoiceCloneConfig:
    """VoiceClone configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        self.config_file: Optional[Path] = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        if self.config_file is not None:
            logger.info(f"Loading configuration from: {self.config_file}")
        else:
            logger.info("No configuration file given, using defaults")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load the YAML file (if any) and merge it over the defaults."""
        if self.config_file is None:
            return copy.deepcopy(DEFAULT_CONFIG)

        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        config = _deep_merge(DEFAULT_CONFIG, loaded)
        for section in DEFAULT_CONFIG:
            if not isinstance(config[section], dict):
                raise ValueError(f"Configuration section '{section}' must be a mapping, "
                                 f"got {type(config[section]).__name__}")
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        data_dir = config['storage'].get('data_directory')
        if data_dir and not os.path.isabs(data_dir):
            config['storage']['data_directory'] = str(config_dir / data_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'api.poll_interval').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'api.base_url')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())


_config: Optional[VoiceCloneConfig] = None


def get_config() -> VoiceCloneConfig:
    """Return the process-wide configuration, loading defaults on first use."""
    global _config
    if _config is None:
        _config = VoiceCloneConfig()
    return _config


def reload_config(config_path: Optional[str] = None) -> VoiceCloneConfig:
    """Replace the process-wide configuration with one loaded from ``config_path``."""
    global _config
    _config = VoiceCloneConfig(config_path)
    return _config
