"""
User configuration management for dupescan.

Supports configuration from multiple sources (in order of priority):
1. Runtime overrides (highest priority)
2. Environment variables
3. User config file (~/.dupescan/config.json)
4. Default values from config.py (lowest priority)

The merged result is an immutable ScanSettings value that is passed explicitly
to the store, scanner and report builder. Changing a setting produces a new
value (ScanSettings.with_overrides) instead of rewriting shared state.

Example config.json:
{
    "hash_method": "phash",
    "hash_size": 16,
    "similarity_threshold_percent": 10,
    "batch_size": 100,
    "cooldown_seconds": 3,
    "max_working_set_size": 100,
    "max_messages": 1000,
    "ingestion_mode": "with_download",
    "channel": "@mychannel",
    "db_path": null,
    "report_dir": null
}
"""

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_HASH_METHOD,
    DEFAULT_HASH_SIZE,
    DEFAULT_MAX_MESSAGES,
    DEFAULT_MAX_WORKING_SET_SIZE,
    DEFAULT_SESSION_NAME,
    DEFAULT_THRESHOLD_PERCENT,
    HASH_METHODS,
    INGESTION_MODES,
    MODE_WITH_DOWNLOAD,
    REPORT_DIR,
    STORE_DB_FILE,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanSettings:
    """
    Immutable settings for one store/scanner setup.

    Raises:
        ValueError: If any value is out of range
    """
    hash_method: str = DEFAULT_HASH_METHOD
    hash_size: int = DEFAULT_HASH_SIZE
    similarity_threshold_percent: float = DEFAULT_THRESHOLD_PERCENT
    batch_size: int = DEFAULT_BATCH_SIZE
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS
    max_working_set_size: int = DEFAULT_MAX_WORKING_SET_SIZE
    max_messages: int = DEFAULT_MAX_MESSAGES
    ingestion_mode: str = MODE_WITH_DOWNLOAD
    channel: Optional[str] = None
    db_path: str = STORE_DB_FILE
    report_dir: str = REPORT_DIR
    bot_token: Optional[str] = None
    api_id: Optional[int] = None
    api_hash: Optional[str] = None
    session_name: str = DEFAULT_SESSION_NAME
    export_path: Optional[str] = None

    def __post_init__(self):
        if self.hash_method not in HASH_METHODS:
            raise ValueError(f"Unknown hash method: {self.hash_method}. Use one of {', '.join(HASH_METHODS)}.")
        if self.hash_size < 2:
            raise ValueError(f"hash_size must be at least 2, got {self.hash_size}")
        if not 0 <= self.similarity_threshold_percent <= 100:
            raise ValueError(
                f"similarity_threshold_percent must be within 0-100, got {self.similarity_threshold_percent}"
            )
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must not be negative, got {self.cooldown_seconds}")
        if self.max_working_set_size < 1:
            raise ValueError(f"max_working_set_size must be positive, got {self.max_working_set_size}")
        if self.max_messages < 1:
            raise ValueError(f"max_messages must be positive, got {self.max_messages}")
        if self.ingestion_mode not in INGESTION_MODES:
            raise ValueError(
                f"Unknown ingestion mode: {self.ingestion_mode}. Use one of {', '.join(INGESTION_MODES)}."
            )

    @property
    def has_history_credentials(self) -> bool:
        """True when MTProto credentials for full history access are configured."""
        return bool(self.api_id and self.api_hash)

    def with_overrides(self, **changes: Any) -> 'ScanSettings':
        """Return a copy with the given fields replaced (None values are ignored)."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)


# Config key -> (environment variables, converter)
_ENV_VARS = {
    'hash_method': (('DUPESCAN_HASH_METHOD',), str),
    'hash_size': (('DUPESCAN_HASH_SIZE',), int),
    'similarity_threshold_percent': (('DUPESCAN_THRESHOLD', 'HASH_DIFFERENCE_THRESHOLD'), float),
    'batch_size': (('DUPESCAN_BATCH_SIZE', 'LITE_MODE_BATCH_SIZE'), int),
    'cooldown_seconds': (('DUPESCAN_COOLDOWN', 'LITE_MODE_COOLDOWN'), float),
    'max_working_set_size': (('DUPESCAN_MAX_WORKING_SET',), int),
    'max_messages': (('DUPESCAN_MAX_MESSAGES',), int),
    'ingestion_mode': (('DUPESCAN_INGESTION_MODE',), str),
    'channel': (('DUPESCAN_CHANNEL', 'CHANNEL_ID'), str),
    'db_path': (('DUPESCAN_DB',), str),
    'report_dir': (('DUPESCAN_REPORT_DIR',), str),
    'bot_token': (('TELEGRAM_BOT_TOKEN',), str),
    'api_id': (('API_ID',), int),
    'api_hash': (('API_HASH',), str),
    'session_name': (('DUPESCAN_SESSION',), str),
    'export_path': (('DUPESCAN_EXPORT_PATH',), str),
}


class UserConfig:
    """
    Manages user configuration from file and environment variables.

    File contents are lazy-loaded and cached.
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    def __new__(cls):
        """Singleton pattern to ensure one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory path."""
        env_dir = os.getenv('DUPESCAN_CONFIG_DIR')
        if env_dir:
            return Path(env_dir)

        return Path.home() / '.dupescan'

    @property
    def config_file_path(self) -> Path:
        """Get the configuration file path."""
        return self.config_dir / 'config.json'

    def _load_config_file(self) -> dict:
        """Load configuration from JSON file."""
        if not self.config_file_path.exists():
            return {}

        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                logger.debug(f"Loaded configuration from {self.config_file_path}")
                return data
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config file {self.config_file_path}: {e}")
            return {}

    def _get_config_data(self) -> dict:
        """Get cached config data (lazy loading)."""
        if self._config_data is None:
            self._config_data = self._load_config_file()
        return self._config_data

    def reload(self):
        """Reload configuration from file."""
        self._config_data = None

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value with priority:
        1. Environment variables registered for the key
        2. Config file
        3. Default value

        Args:
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value
        """
        env_names, convert = _ENV_VARS.get(key, ((), str))
        for env_name in env_names:
            env_value = os.getenv(env_name)
            if env_value:
                try:
                    return convert(env_value)
                except ValueError:
                    logger.warning(f"Ignoring invalid value for {env_name}: {env_value!r}")

        config_data = self._get_config_data()
        if config_data.get(key) is not None:
            return config_data[key]

        return default

    def to_settings(self, **overrides: Any) -> ScanSettings:
        """
        Build the immutable settings value.

        Args:
            **overrides: Runtime values that win over env and file (None is ignored)

        Returns:
            ScanSettings
        """
        values = {}
        for settings_field in dataclasses.fields(ScanSettings):
            value = self.get(settings_field.name)
            if value is not None:
                values[settings_field.name] = value
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ScanSettings(**values)

    def create_example_config(self) -> bool:
        """Create an example configuration file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        defaults = ScanSettings()
        example_config = {
            "_comment": "dupescan user configuration",
            "hash_method": defaults.hash_method,
            "hash_size": defaults.hash_size,
            "similarity_threshold_percent": defaults.similarity_threshold_percent,
            "batch_size": defaults.batch_size,
            "cooldown_seconds": defaults.cooldown_seconds,
            "max_working_set_size": defaults.max_working_set_size,
            "max_messages": defaults.max_messages,
            "ingestion_mode": defaults.ingestion_mode,
            "channel": None,
            "db_path": None,
            "report_dir": None,
        }

        try:
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
            logger.info(f"Created example config file at {self.config_file_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False


# Global instance
_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
