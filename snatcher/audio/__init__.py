"""
Audio package: MP3 decoding, the output sink and local tag reading.
"""

from .decoder import DecodedStream, decode_mp3, probe_mp3
from .output import AudioOutput
from .metadata import MetadataExtractor, TrackTags, FileInfo, tags_from_filename

__all__ = [
    'DecodedStream',
    'decode_mp3',
    'probe_mp3',
    'AudioOutput',
    'MetadataExtractor',
    'TrackTags',
    'FileInfo',
    'tags_from_filename',
]
