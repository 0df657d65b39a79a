"""
Track list screen: browse the catalog and pick a track
"""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, DataTable, Footer, Header, Label, Static

from ..catalog.catalog import Catalog
from ..catalog.models import TrackRecord
from ..core.exceptions import SnatcherError
from ..utils.helpers import format_clock, format_file_size
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Yes/no dialog shown before a track is removed"""

    DEFAULT_CSS = """
    ConfirmDeleteScreen {
        align: center middle;
    }
    ConfirmDeleteScreen Vertical {
        width: 60;
        height: auto;
        border: thick $error;
        padding: 1 2;
        background: $surface;
    }
    ConfirmDeleteScreen Horizontal {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("n,escape", "cancel", "No"),
    ]

    def __init__(self, track: TrackRecord) -> None:
        super().__init__()
        self.track = track

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(f"Delete track {self.track.id}: {self.track.display_name}?")
            with Horizontal():
                yield Button("Delete", id="confirm", variant="error")
                yield Button("Cancel", id="cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class TrackListScreen(Screen):
    """DataTable of every catalog track"""

    BINDINGS = [
        Binding("enter", "play", "Play"),
        Binding("e", "edit", "Edit"),
        Binding("d", "delete", "Delete"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    TrackListScreen #tracks {
        height: 1fr;
    }
    TrackListScreen #empty {
        padding: 1 2;
        color: $text-muted;
    }
    """

    def __init__(self, catalog: Catalog) -> None:
        super().__init__()
        self.catalog = catalog

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="empty")
        yield DataTable(id="tracks")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#tracks", DataTable)
        table.cursor_type = "row"
        table.add_columns("ID", "Artist", "Title", "Album", "Duration", "Size", "Position")
        self.refresh_tracks()
        table.focus()

    def on_screen_resume(self) -> None:
        self.refresh_tracks()

    def refresh_tracks(self) -> None:
        """Re-read the catalog into the table, keeping the cursor row if possible"""
        table = self.query_one("#tracks", DataTable)
        cursor = table.cursor_row
        table.clear()
        tracks = self.catalog.list()
        for track in tracks:
            table.add_row(
                str(track.id),
                track.artist,
                track.title,
                track.album,
                format_clock(track.length) if track.length > 0 else "N/A",
                format_file_size(track.file_size) if track.file_size > 0 else "N/A",
                format_clock(track.playback_position) if track.playback_position > 0 else "",
                key=str(track.id),
            )
        empty = self.query_one("#empty", Static)
        empty.update("" if tracks else "No tracks yet. Add some with 'snatcher add' or 'snatcher download --add'.")
        if tracks:
            table.move_cursor(row=min(cursor, len(tracks) - 1))

    def selected_track(self) -> Optional[TrackRecord]:
        table = self.query_one("#tracks", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        if row_key.value is None:
            return None
        return self.catalog.find(int(row_key.value))

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        event.stop()
        self.action_play()

    def action_play(self) -> None:
        track = self.selected_track()
        if track is None:
            self.app.notify("No track selected")
            return
        if not track.url:
            self.app.notify(f"Track {track.id} has no URL", severity="error")
            return
        self.app.open_player(track)

    def action_edit(self) -> None:
        track = self.selected_track()
        if track is None:
            self.app.notify("No track selected")
            return
        self.app.open_editor(track)

    def action_delete(self) -> None:
        track = self.selected_track()
        if track is None:
            self.app.notify("No track selected")
            return

        def on_answer(confirmed: bool) -> None:
            if confirmed:
                self._delete(track)

        self.app.push_screen(ConfirmDeleteScreen(track), on_answer)

    def _delete(self, track: TrackRecord) -> None:
        try:
            self.catalog.delete(track.id)
            self.catalog.save()
        except SnatcherError as e:
            logger.error(f"Failed to delete track {track.id}: {e}")
            self.app.notify(f"Delete failed: {e}", severity="error")
            return
        self.app.notify(f"Deleted track {track.id}")
        self.refresh_tracks()

    def action_quit(self) -> None:
        self.app.exit()
