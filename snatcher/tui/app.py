"""
Textual application for browsing and playing the catalog
"""

from textual.app import App
from textual.binding import Binding

from .editor import EditorScreen
from .player_screen import PlayerScreen
from .tracklist import TrackListScreen
from ..catalog.catalog import Catalog
from ..catalog.models import TrackRecord
from ..playback.player import Player


class SnatcherApp(App):
    """
    Snatcher terminal UI.

    Screens:
    - TrackListScreen: the catalog, always at the bottom of the stack
    - PlayerScreen: now playing, pushed per track
    - EditorScreen: tag editor, pushed per track

    The app does not own the player; whoever created it closes it.
    """

    TITLE = "Snatcher"
    SUB_TITLE = "Stream your tracks"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=False),
    ]

    def __init__(self, catalog: Catalog, player: Player) -> None:
        super().__init__()
        self.catalog = catalog
        self.player = player

    def on_mount(self) -> None:
        self.push_screen(TrackListScreen(self.catalog))

    def open_player(self, track: TrackRecord) -> None:
        self.push_screen(PlayerScreen(track, self.catalog, self.player))

    def open_editor(self, track: TrackRecord) -> None:
        self.push_screen(EditorScreen(track, self.catalog))

    def on_unmount(self) -> None:
        self.player.stop()
