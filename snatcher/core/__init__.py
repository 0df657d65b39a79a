"""
Core package: exception hierarchy shared by every snatcher component.
"""

from .exceptions import (
    SnatcherError,
    ConnectionError,
    UpstreamError,
    DecodeError,
    NotFoundError,
    ConfigError,
    ValidationError,
    CatalogError,
    StorageError,
    DownloadError,
    CancelledError,
)

__all__ = [
    'SnatcherError',
    'ConnectionError',
    'UpstreamError',
    'DecodeError',
    'NotFoundError',
    'ConfigError',
    'ValidationError',
    'CatalogError',
    'StorageError',
    'DownloadError',
    'CancelledError',
]
