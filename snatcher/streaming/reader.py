"""
Buffered HTTP streaming reader

Presents a remote audio file as a sequential, locally buffered byte stream
for the MP3 decoder. The decoder pulls with blocking reads and never seeks,
so a large read-ahead buffer in front of the socket smooths out network
jitter without any random access support.

Timeouts follow the usual streaming trade-off: connecting and waiting for
the response headers are bounded, but once the body starts flowing there is
no read deadline at all. A track may legitimately take many minutes to
stream; only ``close()`` or the caller's cancellation event stops it.
"""

import io
import socket
import threading
from typing import Optional

import requests
from urllib3.exceptions import HTTPError as TransportError

from ..config.settings import NetworkConfig
from ..core.exceptions import CancelledError, ConnectionError, UpstreamError
from ..utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 256 * 1024

# How often open() checks the cancellation event while the request is in flight
CANCEL_POLL_INTERVAL = 0.05

ACCEPTED_STATUS = (200, 206)


def stream_status_text(stuck_count: int) -> str:
    """
    Describe stream health from the monitor's stall counter

    Args:
        stuck_count: Consecutive monitor ticks without position progress

    Returns:
        Short human readable status
    """
    if stuck_count <= 0:
        return "Streaming"
    if stuck_count <= 3:
        return "Buffering..."
    if stuck_count <= 5:
        return "Slow download"
    return "Possible connection problem"


class _PendingRequest:
    """
    Runs the blocking GET on a helper thread so the caller can give up on
    it when cancelled. A response that arrives after the caller gave up is
    closed by the helper thread itself, together with the session when the
    request owns it.
    """

    def __init__(self, http: requests.Session, url: str, headers: dict, timeout: tuple,
                 owns_session: bool = False):
        self.http = http
        self._owns_session = owns_session
        self._lock = threading.Lock()
        self._finished = threading.Event()
        self._done = False
        self._abandoned = False
        self.response: Optional[requests.Response] = None
        self.error: Optional[Exception] = None
        self._thread = threading.Thread(
            target=self._run,
            args=(url, headers, timeout),
            name="snatcher-http-open",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def wait(self, timeout: float) -> bool:
        return self._finished.wait(timeout)

    def abandon(self) -> None:
        """Give up on the request, closing the response if it already arrived"""
        with self._lock:
            self._abandoned = True
            done = self._done
            response, self.response = self.response, None
        if response is not None:
            response.close()
        if done:
            self.release_session()

    def release_session(self) -> None:
        if self._owns_session:
            self.http.close()

    def _run(self, url, headers, timeout) -> None:
        response = None
        error = None
        try:
            try:
                response = self.http.get(url, headers=headers, stream=True, timeout=timeout)
            except requests.RequestException as e:
                error = e
            with self._lock:
                self._done = True
                late = self._abandoned
                if not late:
                    self.response = response
                    self.error = error
            if late:
                if response is not None:
                    logger.debug(f"Closing response that arrived after cancellation: {url}")
                    response.close()
                self.release_session()
        finally:
            self._finished.set()


class StreamingReader:
    """
    Sequential reader over a long-lived HTTP response body.

    Instances are created with ``StreamingReader.open``. ``read`` may be
    called from the audio thread while ``close`` is called from another
    thread; closing shuts the socket down so a blocked read wakes up.
    """

    def __init__(
        self,
        response: requests.Response,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        sock: Optional[socket.socket] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = response.url
        self.status_code = response.status_code
        self.content_length = int(response.headers.get('Content-Length') or 0)
        self._response = response
        self._socket = sock
        self._session = session
        self._buffer = io.BufferedReader(response.raw, buffer_size)
        self._close_lock = threading.Lock()
        self._closed = False

    @classmethod
    def open(
        cls,
        url: str,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        cancel_event: Optional[threading.Event] = None,
        network: Optional[NetworkConfig] = None,
        http: Optional[requests.Session] = None,
    ) -> 'StreamingReader':
        """
        Open a remote resource for streaming

        Args:
            url: Resource URL
            buffer_size: Size of the read-ahead buffer in bytes
            cancel_event: Set it to abort the request; open() then raises promptly
            network: Timeouts and user agent
            http: Session to issue the request with; by default a fresh one that
                the reader closes along with the response

        Returns:
            Open StreamingReader

        Raises:
            ConnectionError: If the server cannot be reached or headers time out
            UpstreamError: If the status is not 200 or 206
            CancelledError: If cancel_event was set before headers arrived
        """
        network = network or NetworkConfig()
        headers = {
            'Accept-Encoding': 'identity',
            'Range': 'bytes=0-',
            'Connection': 'keep-alive',
            'User-Agent': network.user_agent,
        }
        # The TLS handshake runs inside the connect phase and shares its timeout
        timeout = (network.connect_timeout, network.response_timeout)

        owns_session = http is None
        pending = _PendingRequest(http or requests.Session(), url, headers, timeout, owns_session)
        pending.start()

        while not pending.wait(CANCEL_POLL_INTERVAL):
            if cancel_event is not None and cancel_event.is_set():
                pending.abandon()
                raise CancelledError(f"Opening stream cancelled: {url}", details={'url': url})

        if cancel_event is not None and cancel_event.is_set():
            pending.abandon()
            raise CancelledError(f"Opening stream cancelled: {url}", details={'url': url})

        if pending.error is not None:
            pending.release_session()
            raise ConnectionError(
                f"Cannot connect to {url}: {pending.error}",
                details={'url': url, 'original_error': str(pending.error)}
            ) from pending.error

        response = pending.response
        if response.status_code not in ACCEPTED_STATUS:
            response.close()
            pending.release_session()
            raise UpstreamError(
                f"Server returned HTTP {response.status_code} for {url}",
                status=response.status_code,
                details={'url': url}
            )

        # Headers are in: lift the per-read timeout so a slow stream is never killed
        sock = _response_socket(response)
        if sock is not None:
            sock.settimeout(None)

        logger.debug(f"Stream opened: {url} (status {response.status_code}, {response.headers.get('Content-Length', '?')} bytes)")
        return cls(response, buffer_size, sock, session=pending.http if owns_session else None)

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        """
        Read up to ``size`` bytes; returns b"" at end of stream

        Raises:
            ConnectionError: If the connection drops mid-stream
            ValueError: If the reader was closed
        """
        self._check_open()
        try:
            return self._buffer.read(size)
        except TransportError as e:
            raise ConnectionError(f"Stream interrupted: {e}", details={"url": self.url}) from e

    def close(self) -> None:
        """
        Terminate the connection

        Safe to call more than once and from a thread other than the reader.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        if self._socket is not None:
            try:
                self._socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # already disconnected
        self._response.close()
        if self._session is not None:
            self._session.close()
        logger.debug(f"Stream closed: {self.url}")

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed stream")

    def __enter__(self) -> 'StreamingReader':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def _response_socket(response: requests.Response) -> Optional[socket.socket]:
    """Find the socket under a streamed response, if urllib3 exposes it"""
    connection = getattr(response.raw, 'connection', None) or getattr(response.raw, '_connection', None)
    return getattr(connection, 'sock', None)
