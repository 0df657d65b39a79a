"""
Exception classes for snatcher.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional ``details``
dictionary so callers can log context without parsing strings.

Exception Hierarchy:
    SnatcherError (base)
        ConnectionError - Network failures before any byte was received
        UpstreamError - Remote server answered with an unusable status
        DecodeError - Audio could not be decoded
        NotFoundError - Unknown track ID or missing local file
        ConfigError - Malformed or incomplete configuration
        ValidationError - Bad user input (e.g. non-numeric track ID)
        CatalogError - Catalog file unreadable or corrupted
        StorageError - Object storage request failed
        DownloadError - Remote audio could not be fetched
        CancelledError - Operation aborted through its cancellation token

Note that ``ConnectionError`` intentionally shadows the builtin inside this
module's namespace; import it qualified (``exceptions.ConnectionError``) or
under an alias when both are needed.
"""

from typing import Optional


class SnatcherError(Exception):
    """
    Base exception for all snatcher errors.

    All custom exceptions in this project inherit from this class,
    allowing the CLI and TUI to catch every expected failure with a single
    except clause and show it to the user instead of a traceback.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (track id, url...).

    Example:
        try:
            player.play(track)
        except SnatcherError as e:
            logger.error(f"Playback failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'url': URL that caused the error
                     - 'track_id': catalog ID involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConnectionError(SnatcherError):
    """
    Raised when a remote host cannot be reached.

    Covers DNS failures, refused connections, TLS handshake failures and
    timeouts while waiting for response headers. Retrying the same
    operation (e.g. calling ``Player.play`` again) is a reasonable recovery.
    """
    pass


class UpstreamError(SnatcherError):
    """
    Raised when the remote server answered with a status we cannot stream.

    Only 200 and 206 are accepted for playback. Not retried automatically.

    Attributes:
        status: HTTP status code returned by the server.
    """

    def __init__(self, message: str, status: int, details: Optional[dict] = None) -> None:
        super().__init__(message, details)
        self.status = status


class DecodeError(SnatcherError):
    """
    Raised when audio data is malformed, truncated or not MP3.

    Fatal for the playback session it happened in.
    """
    pass


class NotFoundError(SnatcherError):
    """
    Raised when a track ID is not present in the catalog, or a local file
    given on the command line does not exist.

    Attributes:
        track_id: The ID that was looked up, if any.
    """

    def __init__(self, message: str, track_id: Optional[int] = None, details: Optional[dict] = None) -> None:
        super().__init__(message, details)
        self.track_id = track_id


class ConfigError(SnatcherError):
    """
    Raised when there's an issue with the configuration file.

    Common causes:
        - config file has invalid YAML syntax
        - config root is not a mapping
        - storage credentials missing for a command that needs them

    Example:
        raise ConfigError(
            "Missing storage settings: bucket_name",
            details={'file_path': '~/.snatcher', 'missing': ['bucket_name']}
        )
    """
    pass


class ValidationError(SnatcherError):
    """Raised for bad user input such as a non-numeric track ID or an unknown URL shape."""
    pass


class CatalogError(SnatcherError):
    """
    Raised when the catalog file cannot be read or written.

    An absent or empty catalog file is not an error; a corrupted one is.
    """
    pass


class StorageError(SnatcherError):
    """Raised when an object storage upload or delete fails."""
    pass


class DownloadError(SnatcherError):
    """
    Raised when remote audio cannot be fetched.

    Common causes:
        - video unavailable or removed
        - no format with an audio track
        - download interrupted by a network failure
    """
    pass


class CancelledError(SnatcherError):
    """Raised when an operation is aborted through its cancellation event."""
    pass
