"""Configuration management for the chunkvault CLI."""

import json
import shutil
import tempfile
from pathlib import Path

from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.chunkvault' / 'config.json'


class Config:
    """
    CLI settings persisted as JSON.

    Missing keys fall back to DEFAULT_CONFIG. An unreadable file is copied to
    config.json.bak and ignored rather than overwritten.
    """

    DEFAULT_CONFIG = {
        "vault_host": "localhost",
        "vault_port": 8080,
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        self.config_path = self._usable_path(Path(config_path))
        self.data = {**self.DEFAULT_CONFIG, **self._read()}
        if not self.config_path.exists():
            self.save()

    @staticmethod
    def _usable_path(config_path: Path) -> Path:
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            return config_path
        except PermissionError:
            fallback = Path(tempfile.gettempdir()) / '.chunkvault' / config_path.name
            fallback.parent.mkdir(parents=True, exist_ok=True)
            logger.warning(f"Cannot create {config_path.parent}, using {fallback}")
            return fallback

    def _read(self) -> dict:
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
            return data
        except (ValueError, OSError) as e:
            backup_path = self.config_path.with_suffix('.json.bak')
            logger.warning(f"Ignoring unreadable config {self.config_path} ({e}); backup at {backup_path}")
            try:
                shutil.copy(self.config_path, backup_path)
            except OSError:
                pass
            return {}

    def save(self) -> None:
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def get_base_url(self) -> str:
        """
        Vault server base URL, e.g. "http://localhost:8080".
        """
        return f"http://{self.data['vault_host']}:{self.data['vault_port']}"

    def set_server(self, host: str, port: int) -> None:
        self.data['vault_host'] = host
        self.data['vault_port'] = port
        self.save()

    def get_timeout(self) -> int:
        return self.data['timeout']

    def get_retry_config(self) -> dict:
        """
        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data['max_retries'],
            'retry_backoff_multiplier': self.data['retry_backoff_multiplier'],
        }
