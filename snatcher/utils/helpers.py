"""
Utility functions and helpers for snatcher
Common functions for file naming, duration and size formatting
"""

import re
import unicodedata
from pathlib import Path
from typing import Union


def sanitize_filename(filename: str, max_length: int = 200, replace_spaces: bool = True) -> str:
    """
    Sanitize a title for use as a file name

    Characters that are invalid on common filesystems are replaced with
    underscores rather than dropped, so distinct titles stay distinct.

    Args:
        filename: Original title
        max_length: Maximum filename length
        replace_spaces: Whether to replace spaces with underscores

    Returns:
        Sanitized filename
    """
    if not filename:
        return "unknown"

    filename = unicodedata.normalize('NFC', filename)

    # Characters not allowed in Windows filenames plus control characters
    filename = re.sub(r'[<>:"/\\|?*\x00-\x1f\x7f]', '_', filename)
    filename = filename.strip(' .')

    if replace_spaces:
        filename = re.sub(r'\s+', '_', filename)

    if len(filename) > max_length:
        filename = filename[:max_length]

    if not filename or filename in ['.', '..']:
        return "unknown"

    return filename


def format_duration(seconds: Union[int, float]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string ("3:05" or "1:02:03")
    """
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    else:
        return f"{minutes}:{secs:02d}"


def format_clock(seconds: Union[int, float]) -> str:
    """
    Format duration as a fixed-width HH:MM:SS clock

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string, "00:00:00" for negative input
    """
    if seconds < 0:
        seconds = 0
    total = int(seconds)
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable string

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if size_bytes < 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    size = float(size_bytes)
    unit_index = 0

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    else:
        return f"{size:.1f} {units[unit_index]}"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate string to maximum length with suffix

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text
    if max_length <= len(suffix):
        return text[:max_length]
    return text[:max_length - len(suffix)] + suffix


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure directory exists, create if necessary

    Args:
        path: Directory path

    Returns:
        Path object
    """
    path = Path(path).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path
