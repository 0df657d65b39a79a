"""
Terminal progress ticker for ``snatcher play``

Prints a header for the track, then rewrites a single status line once per
monitor tick until the track ends, the user presses Ctrl+C, or the caller's
cancel event fires. Space or Enter toggles pause.
"""

import signal
import threading
from enum import Enum
from typing import Callable, Optional

import click

from .base import format_status_line, report_event
from ..catalog.models import TrackRecord
from ..core.exceptions import CancelledError
from ..playback.player import FinishedEvent, Player
from ..playback.status import Status
from ..terminal.raw_input import KeyReader, enable_raw_input
from ..utils.helpers import format_clock, format_file_size
from ..utils.logger import get_logger

logger = get_logger(__name__)

CLEAR_LINE = "\r\033[K"
LISTEN_TIMEOUT = 0.2
STALL_WARNING_TICKS = 5


class Outcome(Enum):
    """How a ticker run ended"""
    FINISHED = "finished"
    INTERRUPTED = "interrupted"
    CANCELLED = "cancelled"


class TickerReporter:
    """
    One-line progress display driven by Player events

    Args:
        player: Player to drive; ``run`` starts and always stops it
        echo: Output function with click.echo's signature
    """

    def __init__(self, player: Player, echo: Callable = click.echo) -> None:
        self.player = player
        self.echo = echo
        self._print_lock = threading.Lock()
        self._interrupted = threading.Event()
        self._stall_warned = False
        self.last_status: Optional[Status] = None

    # =========================================================================
    # StatusReporter
    # =========================================================================

    def show_status(self, status: Status) -> None:
        self.last_status = status
        with self._print_lock:
            if status.stuck_count > STALL_WARNING_TICKS and not self._stall_warned:
                self._stall_warned = True
                self.echo(f"\n⚠️  Stream may be stalled. Position: {format_clock(status.current)}")
            elif status.stuck_count == 0:
                self._stall_warned = False
            self.echo(CLEAR_LINE + format_status_line(status), nl=False)

    def show_finished(self) -> None:
        with self._print_lock:
            self.echo("\n✅ Playback finished")

    def show_error(self, error: Exception) -> None:
        with self._print_lock:
            self.echo(click.style(f"\n❌ Playback failed: {error}", fg='red'), err=True)

    # =========================================================================
    # Run loop
    # =========================================================================

    def run(self, track: TrackRecord, cancel_event: Optional[threading.Event] = None) -> Outcome:
        """
        Play ``track`` and report until it ends

        Args:
            track: Catalog record to play
            cancel_event: Optional external cancellation

        Returns:
            Outcome of the run

        Raises:
            SnatcherError: If the track cannot be opened, or playback fails midway
        """
        cancel_event = cancel_event or threading.Event()
        self._interrupted.clear()
        self._stall_warned = False
        self.last_status = None

        self._print_header(track)
        previous_handlers = self._install_signal_handlers()
        raw = None
        keys = None

        try:
            self.echo("🌐 Starting stream...")
            try:
                self.player.play(track)
            except CancelledError:
                self.echo("⏹️  Playback stopped before it started")
                return self._interrupted_outcome(cancel_event)

            self._print_controls()
            raw = enable_raw_input()
            keys = KeyReader(self._on_key)
            keys.start()

            while True:
                if self._interrupted.is_set():
                    self.echo("\n⏹️  Playback stopped by user")
                    return Outcome.INTERRUPTED
                if cancel_event.is_set():
                    self.echo("\n🚫 Operation cancelled")
                    return Outcome.CANCELLED

                event = self.player.listen(LISTEN_TIMEOUT)
                if not report_event(self, event):
                    continue
                if isinstance(event, FinishedEvent):
                    if event.error is not None:
                        raise event.error
                    if event.stopped:
                        return self._interrupted_outcome(cancel_event)
                    return Outcome.FINISHED
                return Outcome.CANCELLED
        finally:
            self.player.stop()
            if keys is not None:
                keys.stop()
            if raw is not None:
                raw.release()
            self._restore_signal_handlers(previous_handlers)

    def _interrupted_outcome(self, cancel_event: threading.Event) -> Outcome:
        if cancel_event.is_set():
            return Outcome.CANCELLED
        return Outcome.INTERRUPTED

    def _on_key(self, key: bytes) -> None:
        self.player.pause()
        playing = self.player.is_playing()
        with self._print_lock:
            self.echo(CLEAR_LINE, nl=False)
            self.echo("▶️  Playing" if playing else "⏸️  Paused")

    def _print_header(self, track: TrackRecord) -> None:
        self.echo("🎵 Now playing:")
        self.echo(f"   ID: {track.id}")
        self.echo(f"   Artist: {track.artist}")
        self.echo(f"   Title: {track.title}")
        self.echo(f"   Album: {track.album}")
        if track.length > 0:
            self.echo(f"   Duration: {format_clock(track.length)}")
        else:
            self.echo("   Duration: determined during playback")
        if track.file_size > 0:
            self.echo(f"   Size: {format_file_size(track.file_size)}")
        if track.playback_position > 0:
            self.echo(f"   Last stopped at: {format_clock(track.playback_position)}")
        self.echo()

    def _print_controls(self) -> None:
        self.echo("🎮 Controls:")
        self.echo("   [Space] - pause/resume")
        self.echo("   [Ctrl+C] - stop and exit")
        self.echo()

    # =========================================================================
    # Signals
    # =========================================================================

    def _handle_signal(self, signum, frame) -> None:
        logger.debug(f"Received signal {signum}")
        self._interrupted.set()
        # stop() also cancels a play() still opening the stream. It must not run
        # on this thread, which may be interrupted while holding the player lock.
        threading.Thread(target=self.player.stop, name="snatcher-signal-stop", daemon=True).start()

    def _install_signal_handlers(self) -> dict:
        if threading.current_thread() is not threading.main_thread():
            return {}
        previous = {}
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self._handle_signal)
        return previous

    def _restore_signal_handlers(self, previous: dict) -> None:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
