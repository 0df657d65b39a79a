"""
Terminal package: raw single-key input during playback.
"""

from .raw_input import enable_raw_input, RawInputHandle, KeyReader, TOGGLE_KEYS

__all__ = [
    'enable_raw_input',
    'RawInputHandle',
    'KeyReader',
    'TOGGLE_KEYS',
]
