"""
Input validation utilities
"""
from pathlib import Path
from typing import Optional, Tuple

from ..core.exceptions import ValidationError


def parse_track_id(value: str) -> int:
    """
    Parse a catalog track ID given on the command line

    Args:
        value: Raw argument

    Returns:
        Positive integer ID

    Raises:
        ValidationError: If the value is not a positive integer
    """
    text = str(value).strip()
    if not text.isdigit() or int(text) <= 0:
        raise ValidationError(f"Invalid track ID: '{value}' (expected a positive number)")
    return int(text)


def validate_audio_file(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a local file before upload

    Args:
        path: File path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path:
        return False, "File path cannot be empty"

    file_path = Path(path).expanduser()
    if not file_path.exists():
        return False, f"File not found: {file_path}"
    if not file_path.is_file():
        return False, f"Not a file: {file_path}"
    if file_path.suffix.lower() != '.mp3':
        return False, f"Only MP3 files are supported: {file_path.name}"

    return True, None
