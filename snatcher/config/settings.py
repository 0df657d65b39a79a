"""
Configuration management for snatcher

This module handles loading, validation, and management of application settings
from a YAML file and environment variables. It provides a centralized
configuration system shared by the CLI and the TUI.

The configuration is organized into logical sections using dataclasses:
- Object storage settings (bucket, credentials, endpoint)
- Download preferences (target directory, timeouts)
- Playback tuning (buffer sizes, monitor interval)
- Network timeouts used by the streaming reader
- Logging output
- File locations (config file, catalog file)

The config file may either use the sectioned layout::

    storage:
      bucket_name: music
      endpoint: https://s3.example.com
    download:
      download_dir: ~/Downloads

or the flat layout written by earlier versions of the tool::

    aws_bucket_name: music
    aws_endpoint: https://s3.example.com
    download_dir: ~/Downloads

Credentials can also be supplied through environment variables (optionally
from a ``.env`` file), which take precedence over the file.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, asdict
from dotenv import load_dotenv

from ..core.exceptions import ConfigError

# Load environment variables from .env file if present
load_dotenv()


DEFAULT_CONFIG_PATH = "~/.snatcher"
DEFAULT_DATA_PATH = "~/.snatcher_data"


@dataclass
class StorageConfig:
    """
    S3-compatible object storage settings

    Sensitive values (access_key, secret_key) should preferably be provided
    via environment variables.
    """
    bucket_name: str = ""
    access_key: str = ""
    secret_key: str = ""
    region: str = ""
    endpoint: str = ""
    public_url: str = ""  # optional CDN/public base, overrides endpoint/bucket in track URLs


@dataclass
class DownloadConfig:
    """
    Download configuration for remote video audio extraction
    """
    download_dir: str = "~/Downloads"
    timeout: int = 900  # 15 minutes
    chunk_size: int = 64 * 1024
    add_to_catalog: bool = False
    mp3_bitrate: int = 192  # kbps, used when converting downloads for upload


@dataclass
class UploadConfig:
    """Upload behaviour for the add command"""
    timeout: int = 600  # 10 minutes
    key_prefix: str = ""


@dataclass
class PlaybackConfig:
    """
    Streaming playback tuning

    The defaults favour smooth streaming over low latency: a large
    read-ahead buffer in front of the decoder and a ~200ms hardware buffer.
    """
    buffer_size: int = 256 * 1024
    sink_buffer_msec: int = 200
    default_sample_rate: int = 44100
    channels: int = 2
    monitor_interval: float = 1.0
    save_position: bool = True


@dataclass
class NetworkConfig:
    """
    Network timeouts for the streaming reader

    Both timeouts end once the response headers arrive; the body may then
    stream for as long as the track lasts.
    """
    connect_timeout: float = 30.0
    response_timeout: float = 30.0
    user_agent: str = "snatcher/1.0"


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings
    """
    level: str = "INFO"
    file: str = "~/.snatcher.log"
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class PathsConfig:
    """Locations of the config file and the track catalog"""
    config_file: str = DEFAULT_CONFIG_PATH
    data_file: str = DEFAULT_DATA_PATH


# Flat keys from the original single-level config layout
LEGACY_KEYS = {
    'aws_bucket_name': ('storage', 'bucket_name'),
    'aws_access_key': ('storage', 'access_key'),
    'aws_secret_key': ('storage', 'secret_key'),
    'aws_region': ('storage', 'region'),
    'aws_endpoint': ('storage', 'endpoint'),
    'download_dir': ('download', 'download_dir'),
}


class Settings:
    """
    Main settings class that manages all configuration

    Loads the YAML config file (sectioned or flat layout), applies
    environment overrides and expands ``~`` in every path so the rest
    of the application only ever sees absolute locations.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file and environment variables

        Args:
            config_path: Path to custom config file, if None uses
                SNATCHER_CONFIG or ~/.snatcher

        Raises:
            ConfigError: If the config file exists but cannot be parsed
        """
        self.storage = StorageConfig()
        self.download = DownloadConfig()
        self.upload = UploadConfig()
        self.playback = PlaybackConfig()
        self.network = NetworkConfig()
        self.logging = LoggingConfig()
        self.paths = PathsConfig()

        self.paths.config_file = config_path or os.getenv('SNATCHER_CONFIG') or DEFAULT_CONFIG_PATH
        self.config_path = Path(self.paths.config_file).expanduser()

        # Load configuration from various sources in order of precedence
        self._load_config()
        self._load_environment_variables()
        self._expand_paths()

    def _load_config(self) -> None:
        """
        Load configuration from the YAML file

        A missing file leaves the defaults in place.
        """
        if not self.config_path.exists():
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML in config file {self.config_path}: {e}",
                details={'file_path': str(self.config_path)}
            )
        except OSError as e:
            raise ConfigError(
                f"Cannot read config file {self.config_path}: {e}",
                details={'file_path': str(self.config_path)}
            )

        if not isinstance(config_data, dict):
            raise ConfigError(
                f"Config file {self.config_path} must contain a mapping",
                details={'file_path': str(self.config_path)}
            )

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Sections map onto the dataclass of the same name; flat legacy keys
        are routed through LEGACY_KEYS. Unknown keys are ignored.

        Args:
            config_data: Dictionary loaded from the config file
        """
        config_mapping = self._sections()

        for key, value in config_data.items():
            if key in config_mapping and isinstance(value, dict):
                config_obj = config_mapping[key]
                for field_name, field_value in value.items():
                    if hasattr(config_obj, field_name):
                        setattr(config_obj, field_name, field_value)
            elif key in LEGACY_KEYS and value is not None:
                section, field_name = LEGACY_KEYS[key]
                setattr(config_mapping[section], field_name, value)

    def _load_environment_variables(self) -> None:
        """
        Load sensitive configuration from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'SNATCHER_DATA_FILE': lambda v: setattr(self.paths, 'data_file', v),
            'SNATCHER_DOWNLOAD_DIR': lambda v: setattr(self.download, 'download_dir', v),
            'SNATCHER_BUCKET': lambda v: setattr(self.storage, 'bucket_name', v),
            'SNATCHER_LOG_LEVEL': lambda v: setattr(self.logging, 'level', v),
            'AWS_ACCESS_KEY_ID': lambda v: setattr(self.storage, 'access_key', v),
            'AWS_SECRET_ACCESS_KEY': lambda v: setattr(self.storage, 'secret_key', v),
            'AWS_REGION': lambda v: setattr(self.storage, 'region', v),
            'AWS_ENDPOINT_URL': lambda v: setattr(self.storage, 'endpoint', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def _expand_paths(self) -> None:
        """Expand ``~`` in every configured path"""
        self.download.download_dir = str(Path(self.download.download_dir).expanduser())
        self.paths.data_file = str(Path(self.paths.data_file).expanduser())
        if self.logging.file:
            self.logging.file = str(Path(self.logging.file).expanduser())

    def _sections(self) -> Dict[str, Any]:
        return {
            'storage': self.storage,
            'download': self.download,
            'upload': self.upload,
            'playback': self.playback,
            'network': self.network,
            'logging': self.logging,
            'paths': self.paths,
        }

    def get_download_directory(self) -> Path:
        """
        Get the download directory path

        Returns:
            Path object for the download directory
        """
        return Path(self.download.download_dir)

    def get_data_file(self) -> Path:
        """
        Get the catalog file path

        Returns:
            Path object for the catalog file
        """
        return Path(self.paths.data_file)

    def missing_storage_fields(self) -> List[str]:
        """Return the names of required storage fields that are empty"""
        required = ['bucket_name', 'access_key', 'secret_key', 'endpoint']
        return [name for name in required if not getattr(self.storage, name)]

    def require_storage(self) -> StorageConfig:
        """
        Return the storage section, failing if it is incomplete

        Raises:
            ConfigError: If any required storage field is empty
        """
        missing = self.missing_storage_fields()
        if missing:
            raise ConfigError(
                f"Missing storage settings in {self.config_path}: {', '.join(missing)}",
                details={'file_path': str(self.config_path), 'missing': missing}
            )
        return self.storage

    def save_config(self, path: Optional[str] = None) -> None:
        """
        Save current configuration to file

        Credentials are blanked out before writing.

        Args:
            path: Custom path to save config, defaults to the loaded config path

        Raises:
            ConfigError: If the configuration cannot be saved
        """
        target = Path(path).expanduser() if path else self.config_path

        config_data = {name: asdict(section) for name, section in self._sections().items()}
        config_data['storage']['access_key'] = ""
        config_data['storage']['secret_key'] = ""

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {target}: {e}")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get global settings instance (singleton pattern)

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from file

    Args:
        config_path: Optional path to a specific config file

    Returns:
        New Settings instance
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
