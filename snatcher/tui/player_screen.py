"""
Player screen: stream one track and show its progress

Player calls block (opening the stream touches the network, ``listen``
waits for the next event), so they run in thread workers. A worker posts
exactly one message per Player event; the handler renders it and re-arms
the listener until the session ends or the screen is left.
"""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.message import Message
from textual.screen import Screen
from textual.widgets import Footer, Header, ProgressBar, Static

from ..catalog.catalog import Catalog
from ..catalog.models import TrackRecord
from ..core.exceptions import CancelledError, SnatcherError
from ..playback.player import Player
from ..playback.status import Status
from ..reporters.base import (
    format_time_pair,
    progress_percent,
    report_event,
    save_position,
    saved_position_hint,
    status_icon,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

LISTEN_TIMEOUT = 0.5


class PlayerScreen(Screen):
    """Now-playing view for a single track"""

    BINDINGS = [
        Binding("space", "toggle_pause", "Pause/Play"),
        Binding("q,escape", "back", "Back"),
    ]

    DEFAULT_CSS = """
    PlayerScreen Vertical {
        padding: 1 2;
        height: auto;
    }
    PlayerScreen #title {
        text-style: bold;
        margin-bottom: 1;
    }
    PlayerScreen #hint {
        color: $text-muted;
    }
    PlayerScreen #status {
        margin: 1 0;
    }
    PlayerScreen #error {
        color: $error;
    }
    """

    class PlaybackStarted(Message):
        """The stream is open and registered with the audio output"""

    class PlaybackFailed(Message):
        def __init__(self, error: Exception) -> None:
            super().__init__()
            self.error = error

    class PlayerUpdate(Message):
        """One result of Player.listen (None when the wait timed out)"""

        def __init__(self, event) -> None:
            super().__init__()
            self.event = event

    def __init__(self, track: TrackRecord, catalog: Catalog, player: Player) -> None:
        super().__init__()
        self.track = track
        self.catalog = catalog
        self.player = player
        self.last_status: Optional[Status] = None
        self.status_text = ""
        self.playback_error: Optional[Exception] = None
        self._leaving = False
        self._finished = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Static("🎵 Now playing", id="title")
            yield Static(self._track_info(), id="info")
            yield Static(self._hint_text(), id="hint")
            yield Static("⏳ Connecting...", id="status")
            yield ProgressBar(total=None, show_eta=False, id="progress")
            yield Static("", id="time")
            yield Static("", id="error")
        yield Footer()

    def on_mount(self) -> None:
        self.run_worker(self._start_playback, thread=True, exclusive=True, group="playback")

    # =========================================================================
    # Workers
    # =========================================================================

    def _start_playback(self) -> None:
        try:
            self.player.play(self.track)
        except CancelledError:
            logger.debug(f"Playback of track {self.track.id} cancelled while loading")
            return
        except SnatcherError as e:
            self.post_message(self.PlaybackFailed(e))
            return
        self.post_message(self.PlaybackStarted())

    def _listen(self) -> None:
        self.post_message(self.PlayerUpdate(self.player.listen(LISTEN_TIMEOUT)))

    def _arm_listener(self) -> None:
        if self._leaving or self._finished:
            return
        self.run_worker(self._listen, thread=True, group="listen")

    # =========================================================================
    # Message handlers
    # =========================================================================

    def on_player_screen_playback_started(self, message: PlaybackStarted) -> None:
        self._set_status_text("▶️ Playing")
        self._arm_listener()

    def on_player_screen_playback_failed(self, message: PlaybackFailed) -> None:
        self._finished = True
        self.show_error(message.error)

    def on_player_screen_player_update(self, message: PlayerUpdate) -> None:
        if report_event(self, message.event):
            self._finished = True
        else:
            self._arm_listener()

    # =========================================================================
    # Rendering
    # =========================================================================

    def show_status(self, status: Status) -> None:
        self.last_status = status
        if status.is_playing:
            self._set_status_text(
                f"{status_icon(status)} Playing | Speed: {status.speed:.2f}x | {status.stream_status}"
            )
        else:
            self._set_status_text(f"{status_icon(status)} Paused")
        bar = self.query_one("#progress", ProgressBar)
        if status.total > 0:
            bar.update(total=status.total, progress=min(status.current, status.total))
        self.query_one("#time", Static).update(f"{format_time_pair(status)}  ({progress_percent(status)})")

    def show_finished(self) -> None:
        self._set_status_text("✅ Finished")

    def show_error(self, error: Exception) -> None:
        self.playback_error = error
        self._set_status_text("❌ Playback error")
        self.query_one("#error", Static).update(f"{error}\nPress q or escape to go back")

    def _set_status_text(self, text: str) -> None:
        self.status_text = text
        self.query_one("#status", Static).update(text)

    def _track_info(self) -> str:
        return f"🎤 {self.track.artist}\n🎵 {self.track.title}\n💿 {self.track.album}"

    def _hint_text(self) -> str:
        hint = saved_position_hint(self.track.playback_position)
        if hint is None:
            return ""
        return f"📍 {hint} (streams always start from the beginning)"

    # =========================================================================
    # Actions
    # =========================================================================

    def action_toggle_pause(self) -> None:
        if self._finished:
            return
        self.player.pause()
        if self.player.current_track() is not None:
            self._set_status_text("▶️ Playing" if self.player.is_playing() else "⏸️ Paused")

    def action_back(self) -> None:
        self._leaving = True
        if self.player.settings.save_position:
            save_position(self.catalog, self.track, self.last_status)
        self.player.stop()
        self.app.pop_screen()
