"""Test video audio download"""

import subprocess
import threading
from unittest.mock import Mock, patch

import pytest
import requests

from snatcher.config.settings import DownloadConfig
from snatcher.core.exceptions import CancelledError, DownloadError, ValidationError
from snatcher.youtube.downloader import (
    FFMPEG_TIMEOUT,
    YouTubeDownloader,
    convert_to_mp3,
    extract_video_id,
    select_audio_format,
)

VIDEO_ID = "dQw4w9WgXcQ"


class FakeResponse:
    """Minimal streamed response for the downloader"""

    def __init__(self, chunks, status=200):
        self.chunks = chunks
        self.status = status
        self.headers = {'Content-Length': str(sum(len(c) for c in chunks))}

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Client Error")

    def iter_content(self, chunk_size=1):
        yield from self.chunks

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


def video_info(formats):
    return {'id': VIDEO_ID, 'title': 'Artist - Song', 'uploader': 'Artist', 'duration': 215,
            'formats': formats}


AUDIO_FORMAT = {'format_id': '140', 'url': 'https://media.example.com/140', 'ext': 'm4a',
                'acodec': 'mp4a.40.2', 'vcodec': 'none', 'abr': 129.5, 'protocol': 'https'}


class TestVideoId:
    """Test video ID extraction"""

    @pytest.mark.parametrize("url", [
        f"https://www.youtube.com/watch?v={VIDEO_ID}",
        f"https://www.youtube.com/watch?feature=share&v={VIDEO_ID}&t=42",
        f"https://youtu.be/{VIDEO_ID}?si=abc",
        f"https://www.youtube.com/embed/{VIDEO_ID}",
        f"https://www.youtube.com/v/{VIDEO_ID}",
        f"https://youtube.com/shorts/{VIDEO_ID}",
        VIDEO_ID,
    ])
    def test_extract_video_id(self, url):
        """Test supported URL forms"""
        assert extract_video_id(url) == VIDEO_ID

    @pytest.mark.parametrize("url", ["", "https://example.com/watch", "short"])
    def test_invalid_url(self, url):
        """Test URLs without a video ID"""
        with pytest.raises(ValidationError):
            extract_video_id(url)


class TestFormatSelection:
    """Test audio format choice"""

    def test_prefers_audio_only(self):
        """Test that audio-only formats beat muxed ones with higher bitrate"""
        muxed = {'format_id': '18', 'url': 'u18', 'ext': 'mp4', 'acodec': 'mp4a', 'vcodec': 'avc1', 'tbr': 600}
        assert select_audio_format([muxed, AUDIO_FORMAT])['format_id'] == '140'

    def test_highest_bitrate(self):
        """Test that the highest bitrate wins"""
        opus = {'format_id': '251', 'url': 'u251', 'ext': 'webm', 'acodec': 'opus', 'vcodec': 'none', 'abr': 160}
        assert select_audio_format([AUDIO_FORMAT, opus])['format_id'] == '251'

    def test_mp4_breaks_tie(self):
        """Test that mp4 containers win at equal bitrate"""
        webm = {'format_id': 'w', 'url': 'uw', 'ext': 'webm', 'acodec': 'opus', 'vcodec': 'none', 'abr': 128}
        m4a = {'format_id': 'm', 'url': 'um', 'ext': 'm4a', 'acodec': 'mp4a', 'vcodec': 'none', 'abr': 128}
        assert select_audio_format([webm, m4a])['format_id'] == 'm'

    def test_skips_manifests_and_silent_formats(self):
        """Test that unusable formats are ignored"""
        manifest = dict(AUDIO_FORMAT, format_id='hls', protocol='m3u8_native', abr=320)
        video_only = {'format_id': '137', 'url': 'u137', 'acodec': 'none', 'vcodec': 'avc1', 'tbr': 4000}
        no_url = dict(AUDIO_FORMAT, format_id='nourl', url=None, abr=500)

        assert select_audio_format([manifest, video_only, no_url, AUDIO_FORMAT])['format_id'] == '140'
        assert select_audio_format([manifest, video_only]) is None
        assert select_audio_format([]) is None


class TestDownload:
    """Test the download transfer"""

    def make_downloader(self, temp_dir, response):
        session = Mock()
        session.get.return_value = response
        downloader = YouTubeDownloader(DownloadConfig(download_dir=str(temp_dir)), session=session)
        downloader.fetch_info = Mock(return_value=video_info([AUDIO_FORMAT]))
        return downloader, session

    def test_download_writes_file(self, temp_dir):
        """Test a successful download"""
        downloader, session = self.make_downloader(temp_dir, FakeResponse([b"abc", b"", b"def"]))
        progress = []

        result = downloader.download(f"https://youtu.be/{VIDEO_ID}",
                                     progress_callback=lambda done, total: progress.append((done, total)))

        assert result.path == temp_dir / "Artist_-_Song.m4a"
        assert result.path.read_bytes() == b"abcdef"
        assert result.size == 6
        assert result.title == "Artist - Song"
        assert result.author == "Artist"
        assert result.duration == 215
        assert result.source_url.endswith(VIDEO_ID)
        assert progress == [(3, 6), (6, 6)]
        assert session.get.call_args[0][0] == AUDIO_FORMAT['url']

    def test_http_error_removes_file(self, temp_dir):
        """Test that a failed transfer leaves nothing behind"""
        downloader, _ = self.make_downloader(temp_dir, FakeResponse([], status=403))

        with pytest.raises(DownloadError):
            downloader.download(VIDEO_ID)
        assert list(temp_dir.iterdir()) == []

    def test_cancel_removes_file(self, temp_dir):
        """Test that cancellation removes the partial file"""
        downloader, _ = self.make_downloader(temp_dir, FakeResponse([b"abc", b"def"]))
        cancel = threading.Event()

        def on_progress(done, total):
            cancel.set()

        with pytest.raises(CancelledError):
            downloader.download(VIDEO_ID, cancel_event=cancel, progress_callback=on_progress)
        assert list(temp_dir.iterdir()) == []

    def test_empty_download(self, temp_dir):
        """Test that an empty body is an error"""
        downloader, _ = self.make_downloader(temp_dir, FakeResponse([]))

        with pytest.raises(DownloadError, match="no data"):
            downloader.download(VIDEO_ID)
        assert list(temp_dir.iterdir()) == []

    def test_no_audio_format(self, temp_dir):
        """Test a video without usable audio"""
        downloader, session = self.make_downloader(temp_dir, FakeResponse([b"x"]))
        downloader.fetch_info.return_value = video_info([])

        with pytest.raises(DownloadError):
            downloader.download(VIDEO_ID)
        session.get.assert_not_called()


class TestConvert:
    """Test MP3 conversion"""

    def test_mp3_unchanged(self, temp_dir):
        """Test that MP3 input is returned as is"""
        source = temp_dir / "song.mp3"
        assert convert_to_mp3(source) == source

    def test_ffmpeg_missing(self, temp_dir):
        """Test the error when ffmpeg is not installed"""
        with patch('snatcher.youtube.downloader.shutil.which', return_value=None):
            with pytest.raises(DownloadError, match="ffmpeg"):
                convert_to_mp3(temp_dir / "song.m4a")

    def test_ffmpeg_command(self, temp_dir):
        """Test the ffmpeg invocation"""
        source = temp_dir / "song.m4a"
        with patch('snatcher.youtube.downloader.shutil.which', return_value='/usr/bin/ffmpeg'), \
                patch('snatcher.youtube.downloader.subprocess.run') as run:
            target = convert_to_mp3(source, bitrate=256)

        assert target == temp_dir / "song.mp3"
        command = run.call_args[0][0]
        assert command[0] == '/usr/bin/ffmpeg'
        assert '256k' in command
        assert command[-1] == str(target)
        assert run.call_args[1]['timeout'] == FFMPEG_TIMEOUT

    def test_ffmpeg_timeout(self, temp_dir):
        """Test that a hung conversion is stopped and its output removed"""
        source = temp_dir / "song.m4a"
        target = temp_dir / "song.mp3"
        target.write_bytes(b"partial")
        hung = subprocess.TimeoutExpired(cmd='ffmpeg', timeout=5)

        with patch('snatcher.youtube.downloader.shutil.which', return_value='/usr/bin/ffmpeg'), \
                patch('snatcher.youtube.downloader.subprocess.run', side_effect=hung):
            with pytest.raises(DownloadError, match="timed out"):
                convert_to_mp3(source, timeout=5)

        assert not target.exists()
