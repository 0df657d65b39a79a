"""
YouTube package: resolve and download the audio track of a video.
"""

from .downloader import (
    YouTubeDownloader,
    DownloadResult,
    extract_video_id,
    select_audio_format,
    convert_to_mp3,
)

__all__ = [
    'YouTubeDownloader',
    'DownloadResult',
    'extract_video_id',
    'select_audio_format',
    'convert_to_mp3',
]
