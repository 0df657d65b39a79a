"""
Streaming player

The Player owns the lifecycle of one track at a time. ``play`` opens a
StreamingReader, decodes it, registers the decoded stream with the shared
AudioOutput through a fresh PlaybackController and starts a monitor thread
that publishes a Status every tick. Front ends consume two signals:

* ``progress``: a one-slot queue of Status snapshots. Publishing never
  blocks; a snapshot the consumer has not picked up yet is replaced by the
  newer one.
* ``done()``: an Event set exactly once per session, when the track ends
  naturally or the session is torn down.

``listen()`` multiplexes both for reporters that want one event at a time.

Threads involved per session: the caller (play/pause/stop), the audio
device thread (pulls PCM, fires completion), and the monitor thread. The
session fields are guarded by ``self._lock``; anything the device thread
reads is guarded by the sink lock ``output.lock``. The device thread never
takes ``self._lock`` while holding the sink lock.
"""

import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from .controller import PlaybackController
from .status import MonitorState, Status
from ..audio.decoder import decode_mp3
from ..audio.output import AudioOutput
from ..catalog.models import TrackRecord
from ..config.settings import NetworkConfig, PlaybackConfig
from ..core.exceptions import CancelledError, SnatcherError
from ..streaming.reader import StreamingReader
from ..utils.logger import get_logger

logger = get_logger(__name__)

# How often listen() re-checks the done signal while waiting for progress
LISTEN_POLL_INTERVAL = 0.1

_CLOSED = object()


class PlayerState(Enum):
    """Lifecycle states of the player"""
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"
    STOPPED = "stopped"
    ERRORED = "errored"


@dataclass
class ProgressEvent:
    """A new Status snapshot is available"""
    status: Status


@dataclass
class FinishedEvent:
    """
    The session is over

    Attributes:
        error: Error that ended playback early, None for a clean finish
        stopped: True if the session was torn down rather than played out
    """
    error: Optional[Exception] = None
    stopped: bool = False


@dataclass
class ClosedEvent:
    """The player was closed; stop listening"""


PlayerEvent = Union[ProgressEvent, FinishedEvent, ClosedEvent]


class _Loading:
    """Cancellation handle for a play() call still opening its stream"""

    def __init__(self) -> None:
        self.cancel = threading.Event()
        self.reader = None


class _Session:
    """Everything belonging to the track currently registered with the sink"""

    def __init__(self, track: TrackRecord, reader, stream, controller: PlaybackController) -> None:
        self.track = track
        self.reader = reader
        self.stream = stream
        self.controller = controller
        self.done = threading.Event()
        self.stop_event = threading.Event()
        self.error: Optional[Exception] = None
        self.stopped = False
        self.monitor: Optional[threading.Thread] = None


def _fired_event() -> threading.Event:
    event = threading.Event()
    event.set()
    return event


class Player:
    """
    Plays one remote MP3 at a time through the shared audio output.

    Args:
        output: The process-wide sink; initialised on first successful decode
        settings: Playback tuning (buffer sizes, monitor interval)
        network: Timeouts for the streaming reader
        reader_factory: ``factory(url, buffer_size=, cancel_event=, network=)``
            returning an open reader; defaults to ``StreamingReader.open``
        decoder: ``decoder(reader, sample_rate=, channels=, default_sample_rate=)``
            returning a decoded stream; defaults to ``decode_mp3``
        clock: Monotonic time source for the monitor
    """

    def __init__(
        self,
        output: AudioOutput,
        settings: Optional[PlaybackConfig] = None,
        network: Optional[NetworkConfig] = None,
        reader_factory: Optional[Callable] = None,
        decoder: Optional[Callable] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.output = output
        self.settings = settings or PlaybackConfig()
        self.network = network or NetworkConfig()
        self._reader_factory = reader_factory or StreamingReader.open
        self._decoder = decoder or decode_mp3
        self._clock = clock

        self._lock = threading.RLock()
        self._session: Optional[_Session] = None
        self._loading: Optional[_Loading] = None
        self._track: Optional[TrackRecord] = None
        self._state = PlayerState.IDLE
        self._closed = False

        self.last_error: Optional[Exception] = None
        self.progress: queue.Queue = queue.Queue(maxsize=1)

    # =========================================================================
    # Public API
    # =========================================================================

    def play(self, track: TrackRecord) -> None:
        """
        Start streaming ``track``

        Tears down any current session first. Returns once audio is
        registered with the sink; playback itself runs in the background.
        The track snapshot is recorded before the network is touched, so
        ``current_track()`` names the track even if opening it fails.

        Args:
            track: Catalog record to play

        Raises:
            ConnectionError: If the server cannot be reached
            UpstreamError: If the server refuses the request
            DecodeError: If the data is not playable MP3
            CancelledError: If stop() or close() was called meanwhile
            SnatcherError: If the player is closed
        """
        with self._lock:
            if self._closed:
                raise SnatcherError("Player is closed")
            self._teardown()
            loading = _Loading()
            self._loading = loading
            self._track = track.copy()
            self._state = PlayerState.LOADING
            self.last_error = None

        logger.info(f"Opening track {track.id}: {track.display_name} ({track.url})")

        try:
            reader = self._reader_factory(
                track.url,
                buffer_size=self.settings.buffer_size,
                cancel_event=loading.cancel,
                network=self.network,
            )
        except SnatcherError as e:
            self._loading_failed(loading, e)
            raise

        with self._lock:
            cancelled = loading.cancel.is_set()
            if not cancelled:
                loading.reader = reader
        if cancelled:
            reader.close()
            raise CancelledError(f"Playback of track {track.id} was cancelled")

        try:
            stream = self._decoder(
                reader,
                sample_rate=self.output.sample_rate or None,
                channels=self.settings.channels,
                default_sample_rate=self.settings.default_sample_rate,
            )
        except SnatcherError as e:
            reader.close()
            if loading.cancel.is_set():
                raise CancelledError(f"Playback of track {track.id} was cancelled") from e
            self._loading_failed(loading, e)
            raise

        with self._lock:
            if loading.cancel.is_set() or self._loading is not loading:
                stream.close()
                reader.close()
                raise CancelledError(f"Playback of track {track.id} was cancelled")
            self._loading = None

            try:
                self.output.init(stream.sample_rate)
            except SnatcherError as e:
                stream.close()
                reader.close()
                self._state = PlayerState.IDLE
                self.last_error = e
                raise

            controller = PlaybackController(stream, self.output.lock, clock=self._clock)
            session = _Session(self._track, reader, stream, controller)
            self._session = session
            self._state = PlayerState.PLAYING
            self.output.play(controller, on_complete=lambda: self._on_complete(session))

            session.monitor = threading.Thread(
                target=self._monitor,
                args=(session,),
                name=f"snatcher-monitor-{track.id}",
                daemon=True,
            )
            session.monitor.start()

        logger.info(f"Playing track {track.id} at {stream.sample_rate} Hz")

    def pause(self) -> None:
        """Toggle pause; does nothing when no track is loaded"""
        with self._lock:
            session = self._session
        if session is None:
            logger.debug("Pause ignored: nothing is playing")
            return
        paused = session.controller.toggle()
        logger.debug(f"Playback {'paused' if paused else 'resumed'}")

    def stop(self) -> None:
        """
        Stop playback and release the stream

        Idempotent, and safe to call while play() is still opening a
        stream or while the monitor is mid-tick.
        """
        with self._lock:
            self._teardown()

    def close(self) -> None:
        """
        Stop playback and shut the player down for good

        Listeners get a ClosedEvent; further play() calls raise.
        The shared AudioOutput is left open for its owner to close.
        """
        with self._lock:
            if self._closed:
                return
            self._teardown()
            self._closed = True
            self._drain_progress()
            self.progress.put_nowait(_CLOSED)
        logger.debug("Player closed")

    def current_track(self) -> Optional[TrackRecord]:
        """Snapshot of the loaded track, None when idle"""
        with self._lock:
            return self._track.copy() if self._track is not None else None

    def is_playing(self) -> bool:
        with self._lock:
            session = self._session
        if session is None:
            return False
        with self.output.lock:
            return not session.controller.paused

    @property
    def state(self) -> PlayerState:
        with self._lock:
            session = self._session
            state = self._state
        if session is None:
            return state
        with self.output.lock:
            return PlayerState.PAUSED if session.controller.paused else PlayerState.PLAYING

    @property
    def closed(self) -> bool:
        return self._closed

    def done(self) -> threading.Event:
        """
        Completion signal of the current session

        When nothing is playing (finished, stopped, closed or never started)
        an already-set event is returned, so waiting on it never hangs.
        """
        with self._lock:
            session = self._session
        return session.done if session is not None else _fired_event()

    def listen(self, timeout: Optional[float] = None) -> Optional[PlayerEvent]:
        """
        Wait for the next event of the current session

        Args:
            timeout: Seconds to wait; None waits until something happens

        Returns:
            ProgressEvent, FinishedEvent or ClosedEvent; None on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._lock:
            session = self._session
            closed = self._closed
            last_error = self.last_error
        if closed:
            return ClosedEvent()

        while True:
            try:
                item = self.progress.get_nowait()
            except queue.Empty:
                item = None
            if item is _CLOSED:
                return ClosedEvent()
            if item is not None:
                return ProgressEvent(item)

            if session is None:
                return FinishedEvent(error=last_error)
            if session.done.is_set():
                return FinishedEvent(error=session.error, stopped=session.stopped)

            wait = LISTEN_POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                wait = min(wait, remaining)
            try:
                item = self.progress.get(timeout=wait)
            except queue.Empty:
                continue
            if item is _CLOSED:
                return ClosedEvent()
            return ProgressEvent(item)

    # =========================================================================
    # Internals
    # =========================================================================

    def _teardown(self) -> None:
        """Release the loading attempt and the session; caller holds self._lock"""
        loading, self._loading = self._loading, None
        if loading is not None:
            loading.cancel.set()
            if loading.reader is not None:
                loading.reader.close()

        session, self._session = self._session, None
        self._track = None
        self._state = PlayerState.IDLE
        self._drain_progress()

        if session is None:
            return

        session.stopped = True
        session.stop_event.set()
        self.output.clear()
        session.stream.close()
        session.reader.close()
        session.done.set()
        logger.info(f"Stopped track {session.track.id}")

    def _loading_failed(self, loading: _Loading, error: Exception) -> None:
        with self._lock:
            if self._loading is loading:
                self._loading = None
                self._state = PlayerState.IDLE
                self.last_error = error
        logger.error(f"Cannot play track: {error}")

    def _on_complete(self, session: _Session) -> None:
        """Runs on the audio device thread when the stream runs dry"""
        with self._lock:
            if self._session is not session:
                return
            self._session = None
            self._track = None
            self._state = PlayerState.IDLE
            session.stop_event.set()
            session.error = session.stream.error
            if session.error is not None:
                self.last_error = session.error

        session.stream.close()
        session.reader.close()
        session.done.set()

        if session.error is not None:
            logger.error(f"Playback of track {session.track.id} ended with error: {session.error}")
        else:
            logger.info(f"Finished track {session.track.id}")

    def _monitor(self, session: _Session) -> None:
        """Sample the session once per interval until it ends"""
        state = MonitorState(self._clock())
        interval = self.settings.monitor_interval

        while not session.stop_event.wait(interval):
            with self.output.lock:
                now = self._clock()
                position = session.controller.position()
                length = session.controller.length()
                paused = session.controller.paused
                paused_time = session.controller.paused_time(now)

            status = state.tick(
                now=now,
                position=position,
                length=length,
                paused=paused,
                sample_rate=session.stream.sample_rate,
                track_length=session.track.length,
                paused_time=paused_time,
            )
            if status.stuck_count > 5:
                logger.debug(f"Track {session.track.id} stalled for {status.stuck_count} ticks")
            self._publish(session, status)

    def _publish(self, session: _Session, status: Status) -> None:
        with self._lock:
            if self._closed or self._session is not session:
                return
            try:
                self.progress.put_nowait(status)
            except queue.Full:
                self._drain_progress()
                self.progress.put_nowait(status)

    def _drain_progress(self) -> None:
        try:
            while True:
                self.progress.get_nowait()
        except queue.Empty:
            pass
