"""
Streaming package: HTTP-backed byte streams for playback.
"""

from .reader import StreamingReader, stream_status_text, DEFAULT_BUFFER_SIZE

__all__ = [
    'StreamingReader',
    'stream_status_text',
    'DEFAULT_BUFFER_SIZE',
]
