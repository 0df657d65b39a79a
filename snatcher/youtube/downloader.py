"""
Video audio downloader

Resolves a video URL to its best audio-only stream with yt-dlp, then
fetches that stream directly with requests so the transfer can be
cancelled and reported chunk by chunk. Downloads keep the container the
site serves (usually m4a or webm); ``convert_to_mp3`` turns a download into
an MP3 for the catalog, which only plays MP3.
"""

import os
import re
import shutil
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests
import yt_dlp
from yt_dlp.utils import YoutubeDLError

from ..config.settings import DownloadConfig, NetworkConfig
from ..core.exceptions import CancelledError, DownloadError, ValidationError
from ..utils.helpers import ensure_directory, sanitize_filename
from ..utils.logger import get_logger

logger = get_logger(__name__)

VIDEO_ID_PATTERNS = [
    re.compile(r'(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/)([A-Za-z0-9_-]{11})'),
    re.compile(r'youtube\.com/embed/([A-Za-z0-9_-]{11})'),
    re.compile(r'youtube\.com/v/([A-Za-z0-9_-]{11})'),
    re.compile(r'youtube\.com/shorts/([A-Za-z0-9_-]{11})'),
]
BARE_VIDEO_ID = re.compile(r'^[A-Za-z0-9_-]{11}$')

# Protocols a plain HTTP GET can fetch; manifests need yt-dlp's own downloaders
DIRECT_PROTOCOLS = ('http', 'https')

# Upper bound for one ffmpeg conversion
FFMPEG_TIMEOUT = 300
MP4_EXTENSIONS = ('m4a', 'mp4')


def extract_video_id(url: str) -> str:
    """
    Extract the 11-character video ID from a URL or bare ID

    Supports watch?v=, youtu.be/, embed/, v/ and shorts/ URLs.

    Raises:
        ValidationError: If no video ID can be found
    """
    url = (url or "").strip()
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    if BARE_VIDEO_ID.match(url):
        return url
    raise ValidationError(f"Cannot extract a video ID from: {url}")


def _has_audio(fmt: Dict[str, Any]) -> bool:
    return fmt.get('acodec') not in (None, 'none')


def _has_video(fmt: Dict[str, Any]) -> bool:
    return fmt.get('vcodec') not in (None, 'none')


def _bitrate(fmt: Dict[str, Any]) -> float:
    return float(fmt.get('abr') or fmt.get('tbr') or 0)


def _is_mp4(fmt: Dict[str, Any]) -> bool:
    return fmt.get('ext') in MP4_EXTENSIONS or 'mp4' in (fmt.get('container') or '')


def select_audio_format(formats: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Pick the format to download from yt-dlp's format list

    Audio-only formats win over muxed ones; within a group the higher
    bitrate wins (abr, else tbr) and an mp4/m4a container breaks ties.
    Only formats fetchable with a direct HTTP request are considered.

    Args:
        formats: ``info['formats']`` as returned by yt-dlp

    Returns:
        The chosen format dict, or None if no format carries audio
    """
    candidates = [
        fmt for fmt in formats or []
        if fmt.get('url') and _has_audio(fmt)
        and (fmt.get('protocol') or 'https') in DIRECT_PROTOCOLS
    ]
    if not candidates:
        return None

    audio_only = [fmt for fmt in candidates if not _has_video(fmt)]
    pool = audio_only or candidates
    return max(pool, key=lambda fmt: (_bitrate(fmt), _is_mp4(fmt)))


@dataclass
class DownloadResult:
    """A finished download"""
    path: Path
    video_id: str
    title: str
    author: str
    source_url: str
    format_id: str = ""
    size: int = 0
    duration: int = 0


class YouTubeDownloader:
    """
    Download the audio track of a single video

    Args:
        config: Download section of the settings
        network: Network timeouts
        session: requests session (tests inject one)
    """

    def __init__(self, config: Optional[DownloadConfig] = None,
                 network: Optional[NetworkConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or DownloadConfig()
        self.network = network or NetworkConfig()
        self.session = session or requests.Session()

    def fetch_info(self, video_id: str) -> Dict[str, Any]:
        """
        Extract video metadata and formats without downloading

        Raises:
            DownloadError: If yt-dlp cannot resolve the video
        """
        ydl_opts = {
            'quiet': True,
            'no_warnings': True,
            'noplaylist': True,
            'socket_timeout': self.network.connect_timeout,
        }
        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(f"https://www.youtube.com/watch?v={video_id}", download=False)
        except YoutubeDLError as e:
            raise DownloadError(f"Cannot get video info for {video_id}: {e}", details={'video_id': video_id}) from e
        if not info:
            raise DownloadError(f"No video info for {video_id}", details={'video_id': video_id})
        return info

    def download(
        self,
        url: str,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, Optional[int]], None]] = None,
    ) -> DownloadResult:
        """
        Download the best audio stream of a video

        The file is written to ``<download_dir>/<sanitized title>.<ext>``.
        A partial file is removed if the download fails or is cancelled.

        Args:
            url: Video URL or bare video ID
            cancel_event: Set to abort the transfer
            progress_callback: Called with (bytes written, total bytes or None)

        Returns:
            DownloadResult describing the saved file

        Raises:
            ValidationError: If the URL has no video ID
            DownloadError: If the video or its audio cannot be fetched
            CancelledError: If cancel_event was set
        """
        video_id = extract_video_id(url)
        info = self.fetch_info(video_id)
        title = info.get('title') or video_id
        author = info.get('uploader') or info.get('channel') or ""

        fmt = select_audio_format(info.get('formats') or [])
        if fmt is None:
            raise DownloadError(f"No downloadable audio format for {video_id}", details={'video_id': video_id})

        logger.info(f"Downloading '{title}' by {author or 'unknown'}: format {fmt.get('format_id')} "
                    f"({fmt.get('ext')}, {_bitrate(fmt):.0f} kbps)")

        target_dir = ensure_directory(self.config.download_dir)
        path = target_dir / f"{sanitize_filename(title)}.{fmt.get('ext') or 'm4a'}"
        size = self._fetch(fmt, path, cancel_event, progress_callback)

        logger.info(f"Saved {path} ({size} bytes)")
        return DownloadResult(
            path=path,
            video_id=video_id,
            title=title,
            author=author,
            source_url=f"https://www.youtube.com/watch?v={video_id}",
            format_id=str(fmt.get('format_id') or ""),
            size=size,
            duration=int(info.get('duration') or 0),
        )

    def _fetch(self, fmt: Dict[str, Any], path: Path,
               cancel_event: Optional[threading.Event],
               progress_callback: Optional[Callable[[int, Optional[int]], None]]) -> int:
        headers = dict(fmt.get('http_headers') or {})
        written = 0
        try:
            with self.session.get(fmt['url'], headers=headers, stream=True,
                                  timeout=(self.network.connect_timeout, self.config.timeout)) as response:
                response.raise_for_status()
                total = int(response.headers.get('Content-Length') or 0) or fmt.get('filesize') or None

                with open(path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                        if cancel_event is not None and cancel_event.is_set():
                            raise CancelledError(f"Download of {path.name} was cancelled")
                        if not chunk:
                            continue
                        f.write(chunk)
                        written += len(chunk)
                        if progress_callback:
                            progress_callback(written, total)
        except CancelledError:
            _remove_partial(path)
            raise
        except (requests.RequestException, OSError) as e:
            _remove_partial(path)
            raise DownloadError(f"Download failed: {e}", details={'file_path': str(path)}) from e

        if written == 0:
            _remove_partial(path)
            raise DownloadError("Download returned no data", details={'file_path': str(path)})
        return written


def convert_to_mp3(source: Path, bitrate: int = 192, timeout: float = FFMPEG_TIMEOUT) -> Path:
    """
    Transcode a downloaded file to MP3 next to the original

    Args:
        source: Downloaded audio file
        bitrate: Target bitrate in kbps
        timeout: Seconds to wait for ffmpeg before giving up

    Returns:
        Path of the MP3 (``source`` itself if it already is one)

    Raises:
        DownloadError: If ffmpeg is missing, fails or times out
    """
    source = Path(source)
    if source.suffix.lower() == '.mp3':
        return source

    ffmpeg = shutil.which('ffmpeg')
    if not ffmpeg:
        raise DownloadError("ffmpeg is required to convert downloads to MP3 but was not found in PATH")

    target = source.with_suffix('.mp3')
    command = [ffmpeg, '-y', '-loglevel', 'error', '-i', str(source),
               '-vn', '-codec:a', 'libmp3lame', '-b:a', f'{bitrate}k', str(target)]
    logger.info(f"Converting {source.name} to MP3 ({bitrate} kbps)")
    try:
        subprocess.run(command, check=True, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired as e:
        _remove_partial(target)
        raise DownloadError(f"ffmpeg timed out after {timeout:g}s converting {source.name}") from e
    except subprocess.CalledProcessError as e:
        _remove_partial(target)
        raise DownloadError(f"ffmpeg failed to convert {source.name}: {e.stderr.strip()}") from e
    except OSError as e:
        _remove_partial(target)
        raise DownloadError(f"Cannot run ffmpeg: {e}") from e
    return target


def _remove_partial(path: Path) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
            logger.debug(f"Removed partial file {path}")
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")
