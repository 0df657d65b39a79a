"""Test configuration and fixtures"""

import pytest
import tempfile
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from snatcher.catalog.catalog import Catalog
from snatcher.catalog.models import TrackRecord
from snatcher.config.settings import NetworkConfig, PlaybackConfig


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_track():
    """Sample catalog record for testing"""
    return TrackRecord(
        id=1,
        artist="Test Artist",
        title="Test Song",
        album="Test Album",
        length=210,
        file_size=5_040_000,
        url="https://storage.example.com/music/Test_Song.mp3",
    )


@pytest.fixture
def catalog(temp_dir):
    """Empty catalog backed by a temporary file"""
    return Catalog(temp_dir / "catalog.yaml").load()


class FakeReader:
    """Stands in for StreamingReader"""

    def __init__(self, url=""):
        self.url = url
        self.closed = False
        self.close_calls = 0

    def read(self, size=-1):
        return b""

    def close(self):
        self.closed = True
        self.close_calls += 1


class FakeStream:
    """
    Stands in for DecodedStream

    Serves ``chunks`` reads of audio, then end of stream.
    """

    def __init__(self, chunks=1000, sample_rate=44100, channels=2, length=0, error=None):
        self.sample_rate = sample_rate
        self.channels = channels
        self.frame_size = channels * 2
        self.remaining = chunks
        self.frames = 0
        self.total = length
        self.error = error
        self.closed = False
        self.close_calls = 0

    def read(self, frames):
        if self.closed or self.remaining <= 0:
            return b""
        self.remaining -= 1
        self.frames += frames
        return b"\x01" * (frames * self.frame_size)

    def position(self):
        return self.frames

    def length(self):
        return self.total

    def close(self):
        self.closed = True
        self.close_calls += 1


class FakeDevice:
    """Stands in for miniaudio.PlaybackDevice; tests drive ``generator`` by hand"""

    def __init__(self, sample_rate, channels, buffer_msec):
        self.sample_rate = sample_rate
        self.generator = None
        self.stopped = False
        self.closed = False

    def start(self, generator):
        self.generator = generator

    def pull(self, frames=512):
        return self.generator.send(frames)

    def stop(self):
        self.stopped = True

    def close(self):
        self.closed = True


class PlayerFakes:
    """Factories recording every reader, stream and device a Player creates"""

    def __init__(self):
        self.readers = []
        self.streams = []
        self.devices = []
        self.failing_urls = {}
        self.stream_chunks = 1000
        self.stream_error = None

    def reader_factory(self, url, buffer_size=None, cancel_event=None, network=None):
        if url in self.failing_urls:
            raise self.failing_urls[url]
        reader = FakeReader(url)
        self.readers.append(reader)
        return reader

    def decoder(self, reader, sample_rate=None, channels=2, default_sample_rate=44100):
        stream = FakeStream(
            chunks=self.stream_chunks,
            sample_rate=sample_rate or default_sample_rate,
            channels=channels,
            error=self.stream_error,
        )
        self.streams.append(stream)
        return stream

    def device_factory(self, sample_rate, channels, buffer_msec):
        device = FakeDevice(sample_rate, channels, buffer_msec)
        self.devices.append(device)
        return device


@pytest.fixture
def player_fakes():
    """Fake reader, decoder and device factories for Player tests"""
    return PlayerFakes()


@pytest.fixture
def player(player_fakes):
    """Player wired to fakes; the monitor is slowed down so tests control events"""
    from snatcher.audio.output import AudioOutput
    from snatcher.playback.player import Player

    output = AudioOutput(device_factory=player_fakes.device_factory)
    player = Player(
        output,
        settings=PlaybackConfig(monitor_interval=60.0),
        network=NetworkConfig(),
        reader_factory=player_fakes.reader_factory,
        decoder=player_fakes.decoder,
    )
    yield player
    player.close()
    output.close()


class AudioHandler(BaseHTTPRequestHandler):
    """Serves the bodies in ``server.routes`` and 404 everywhere else"""

    def do_GET(self):
        body = self.server.routes.get(self.path)
        if body is None:
            self.send_error(404)
            return
        self.server.requests.append(dict(self.headers))
        self.send_response(206 if self.headers.get("Range") else 200)
        self.send_header("Content-Type", "audio/mpeg")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def audio_server():
    """Local HTTP server on an ephemeral port; tests fill in ``routes``"""
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), AudioHandler)
    httpd.routes = {}
    httpd.requests = []
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield httpd
    httpd.shutdown()
    httpd.server_close()


def url_for(httpd, path):
    host, port = httpd.server_address[:2]
    return f"http://{host}:{port}{path}"


def silent_mp3(frames=100):
    """
    Build a constant-bitrate MP3 of silent frames

    Each frame is an MPEG-1 Layer III header (128 kbps, 44.1 kHz, stereo)
    followed by zeroed side info and main data, which decodes to 1152
    samples of silence per channel.
    """
    header = b"\xff\xfb\x90\x00"
    frame_length = 144 * 128000 // 44100
    return (header + bytes(frame_length - len(header))) * frames
