"""
Utilities package
Common helpers, logging, and validation functions
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    OperationLogger,
    create_operation_logger,
    get_current_log_file,
)
from .helpers import (
    sanitize_filename,
    format_duration,
    format_clock,
    format_file_size,
    truncate_string,
    ensure_directory,
)
from .validation import parse_track_id, validate_audio_file

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'OperationLogger',
    'create_operation_logger',
    'get_current_log_file',

    # Helper exports
    'sanitize_filename',
    'format_duration',
    'format_clock',
    'format_file_size',
    'truncate_string',
    'ensure_directory',

    # Validation exports
    'parse_track_id',
    'validate_audio_file',
]
