"""
Editor screen: change a track's artist, title and album
"""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Input, Label, Static

from ..catalog.catalog import Catalog
from ..catalog.models import TrackRecord
from ..core.exceptions import SnatcherError
from ..utils.logger import get_logger

logger = get_logger(__name__)

FIELDS = ("artist", "title", "album")


class EditorScreen(Screen):
    """Form with one Input per editable field"""

    BINDINGS = [
        Binding("ctrl+s", "save", "Save"),
        Binding("escape", "back", "Back"),
    ]

    DEFAULT_CSS = """
    EditorScreen Vertical {
        padding: 1 2;
        height: auto;
    }
    EditorScreen Input {
        margin-bottom: 1;
    }
    """

    def __init__(self, track: TrackRecord, catalog: Catalog) -> None:
        super().__init__()
        self.track = track
        self.catalog = catalog

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            yield Static(f"✏️  Editing track {self.track.id}")
            for name in FIELDS:
                yield Label(name.capitalize())
                yield Input(value=getattr(self.track, name), placeholder=name.capitalize(), id=name)
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#artist", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.focus_next()

    def action_save(self) -> None:
        values = {name: self.query_one(f"#{name}", Input).value for name in FIELDS}
        try:
            updated = self.catalog.edit(self.track.id, **values)
            self.catalog.save()
        except SnatcherError as e:
            logger.error(f"Failed to save track {self.track.id}: {e}")
            self.app.notify(str(e), severity="error")
            return

        self.app.notify(f"Saved track {updated.id}")
        self.app.pop_screen()

    def action_back(self) -> None:
        self.app.pop_screen()
