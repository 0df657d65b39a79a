"""Test the buffered HTTP streaming reader against a local server"""

import socket
import threading
import time

import pytest
import requests

from snatcher.config.settings import NetworkConfig
from snatcher.core.exceptions import CancelledError, ConnectionError, UpstreamError
from snatcher.streaming.reader import StreamingReader

from conftest import url_for

BODY = bytes(range(256)) * 64


class TrackingSession(requests.Session):
    """Session that counts close calls"""

    def __init__(self):
        super().__init__()
        self.close_calls = 0

    def close(self):
        self.close_calls += 1
        super().close()


@pytest.fixture
def sessions(monkeypatch):
    """Every session the reader creates on its own"""
    created = []

    def factory():
        session = TrackingSession()
        created.append(session)
        return session

    monkeypatch.setattr("snatcher.streaming.reader.requests.Session", factory)
    return created


@pytest.fixture
def server(audio_server):
    """Local server with BODY at /track.mp3"""
    audio_server.routes["/track.mp3"] = BODY
    return audio_server


class TestOpen:
    """Test opening streams"""

    def test_reads_whole_body(self, server):
        """Test that the body is delivered in order"""
        with StreamingReader.open(url_for(server, "/track.mp3"), buffer_size=4096) as reader:
            assert reader.content_length == len(BODY)
            assert reader.status_code in (200, 206)

            data = b""
            while True:
                chunk = reader.read(1000)
                if not chunk:
                    break
                data += chunk

        assert data == BODY

    def test_request_headers(self, server):
        """Test the streaming request headers"""
        network = NetworkConfig(user_agent="snatcher-test")
        reader = StreamingReader.open(url_for(server, "/track.mp3"), network=network)
        reader.close()

        headers = server.requests[0]
        assert headers["Range"] == "bytes=0-"
        assert headers["Accept-Encoding"] == "identity"
        assert headers["User-Agent"] == "snatcher-test"

    def test_not_found(self, server):
        """Test that a 404 becomes UpstreamError"""
        with pytest.raises(UpstreamError) as exc_info:
            StreamingReader.open(url_for(server, "/missing.mp3"))
        assert exc_info.value.status == 404

    def test_connection_refused(self):
        """Test that an unreachable host becomes ConnectionError"""
        sock = socket.socket()
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        sock.close()

        with pytest.raises(ConnectionError):
            StreamingReader.open(f"http://127.0.0.1:{port}/track.mp3",
                                 network=NetworkConfig(connect_timeout=2.0, response_timeout=2.0))

    def test_cancel_while_waiting_for_headers(self):
        """Test that cancellation aborts a request the server never answers"""
        listener = socket.socket()
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        port = listener.getsockname()[1]
        cancel = threading.Event()
        timer = threading.Timer(0.3, cancel.set)

        try:
            timer.start()
            started = time.monotonic()
            with pytest.raises(CancelledError):
                StreamingReader.open(f"http://127.0.0.1:{port}/track.mp3", cancel_event=cancel)
            assert time.monotonic() - started < 2.0
        finally:
            timer.cancel()
            listener.close()

    def test_already_cancelled(self, server):
        """Test that a pre-set cancellation event wins over a fast response"""
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(CancelledError):
            StreamingReader.open(url_for(server, "/track.mp3"), cancel_event=cancel)


class TestClose:
    """Test reader shutdown"""

    def test_read_after_close(self, server):
        """Test that reading a closed reader fails"""
        reader = StreamingReader.open(url_for(server, "/track.mp3"))
        reader.close()

        assert reader.closed
        with pytest.raises(ValueError):
            reader.read(10)

    def test_close_is_idempotent(self, server):
        """Test that close may be called repeatedly"""
        reader = StreamingReader.open(url_for(server, "/track.mp3"))
        reader.close()
        reader.close()
        assert reader.closed


class TestSessions:
    """Test ownership of the HTTP session"""

    def test_own_session_closed_with_reader(self, server, sessions):
        """Test that the session created by open() is closed by close()"""
        reader = StreamingReader.open(url_for(server, "/track.mp3"))
        assert sessions[0].close_calls == 0

        reader.close()
        assert sessions[0].close_calls == 1

    def test_own_session_closed_on_refusal(self, server, sessions):
        """Test that an error status releases the session"""
        with pytest.raises(UpstreamError):
            StreamingReader.open(url_for(server, "/missing.mp3"))
        assert sessions[0].close_calls == 1

    def test_caller_session_left_open(self, server):
        """Test that a session passed in stays with the caller"""
        session = TrackingSession()
        reader = StreamingReader.open(url_for(server, "/track.mp3"), http=session)
        reader.close()

        assert session.close_calls == 0
        session.close()
