"""Configuration management for the chunk upload CLI."""

import json
import os
import shutil
from pathlib import Path

from common.constants import DEFAULT_CHUNK_SIZE_BYTES, SERVER_PORT

DEFAULT_CONFIG_PATH = Path.home() / '.chunk-upload' / 'config.json'


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("ASSEMBLER_HOST", "localhost"),
        "server_port": int(os.environ.get("ASSEMBLER_PORT", str(SERVER_PORT))),
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
        "chunk_size": DEFAULT_CHUNK_SIZE_BYTES,
        "workers": 4,
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.chunk-upload/config.json)
        """
        self.config_path = Path(config_path)
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A corrupt file is backed up to config.json.bak and replaced by defaults.

        Returns:
            Configuration dictionary
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.config_path.exists():
            config = self.DEFAULT_CONFIG.copy()
            self._write(config)
            return config

        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError):
            shutil.copy(self.config_path, self.config_path.with_suffix('.json.bak'))
            return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        config.update(data)
        return config

    def _write(self, data: dict) -> None:
        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

    def save(self) -> None:
        """Save current configuration to file."""
        self._write(self.data)

    def set(self, key: str, value) -> None:
        """
        Set a configuration value and save to file.

        Raises:
            KeyError: If key is not a known setting
        """
        if key not in self.DEFAULT_CONFIG:
            raise KeyError(key)
        self.data[key] = type(self.DEFAULT_CONFIG[key])(value)
        self.save()

    def get_base_url(self) -> str:
        """
        Get server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8080")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', SERVER_PORT)
        return f"http://{host}:{port}"

    def get_timeout(self) -> int:
        return self.data.get('timeout', 30)

    def get_chunk_size(self) -> int:
        return self.data.get('chunk_size', DEFAULT_CHUNK_SIZE_BYTES)

    def get_workers(self) -> int:
        return self.data.get('workers', 4)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }
