"""
Configuration package for snatcher

Exposes the settings singleton and the dataclass sections it is built from.
Most code only needs::

    from snatcher.config import get_settings

    settings = get_settings()
"""

from .settings import (
    get_settings,
    reload_settings,
    Settings,
    StorageConfig,
    DownloadConfig,
    UploadConfig,
    PlaybackConfig,
    NetworkConfig,
    LoggingConfig,
    PathsConfig,
)

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'StorageConfig',
    'DownloadConfig',
    'UploadConfig',
    'PlaybackConfig',
    'NetworkConfig',
    'LoggingConfig',
    'PathsConfig',
]
