"""Test the textual screens with the headless pilot"""

import asyncio

from textual.widgets import DataTable, Input

from snatcher.catalog.models import TrackRecord
from snatcher.core.exceptions import UpstreamError
from snatcher.tui.app import SnatcherApp
from snatcher.tui.editor import EditorScreen
from snatcher.tui.player_screen import PlayerScreen
from snatcher.tui.tracklist import ConfirmDeleteScreen, TrackListScreen


class IdlePlayer:
    """Player stand-in for screens that never start playback"""

    def __init__(self):
        self.stop_calls = 0

    def stop(self):
        self.stop_calls += 1


class FailingPlayer(IdlePlayer):
    """Player stand-in whose streams are always refused"""

    def play(self, track):
        raise UpstreamError(f"Server returned HTTP 403 for {track.url}", status=403)


def seeded_app(catalog, sample_track):
    catalog.add(sample_track)
    catalog.add(TrackRecord(artist="Second", title="Another Song", url=""))
    return SnatcherApp(catalog, IdlePlayer())


class TestTrackList:
    """Test the catalog table"""

    def test_rows_shown(self, catalog, sample_track):
        """Test that every track gets a row"""
        app = seeded_app(catalog, sample_track)

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                assert isinstance(app.screen, TrackListScreen)
                table = app.screen.query_one("#tracks", DataTable)
                assert table.row_count == 2
                assert app.screen.selected_track().id == 1

        asyncio.run(scenario())

    def test_delete_confirmed(self, catalog, sample_track):
        """Test that a confirmed delete removes and saves the track"""
        app = seeded_app(catalog, sample_track)

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("d")
                await pilot.pause()
                assert isinstance(app.screen, ConfirmDeleteScreen)
                await pilot.press("y")
                await pilot.pause()
                assert app.screen.query_one("#tracks", DataTable).row_count == 1

        asyncio.run(scenario())
        assert catalog.find(1) is None
        assert catalog.path.exists()

    def test_delete_cancelled(self, catalog, sample_track):
        """Test that declining keeps the track"""
        app = seeded_app(catalog, sample_track)

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("d")
                await pilot.pause()
                await pilot.press("n")
                await pilot.pause()
                assert isinstance(app.screen, TrackListScreen)

        asyncio.run(scenario())
        assert len(catalog) == 2


class TestEditor:
    """Test the tag editor"""

    def test_edit_and_save(self, catalog, sample_track):
        """Test that saved values reach the catalog"""
        app = seeded_app(catalog, sample_track)

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("e")
                await pilot.pause()
                assert isinstance(app.screen, EditorScreen)
                app.screen.query_one("#title", Input).value = "Edited Title"
                await pilot.press("ctrl+s")
                await pilot.pause()
                assert isinstance(app.screen, TrackListScreen)

        asyncio.run(scenario())
        assert catalog.get(1).title == "Edited Title"

    def test_blank_title_rejected(self, catalog, sample_track):
        """Test that the editor stays open on a blank title"""
        app = seeded_app(catalog, sample_track)

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("e")
                await pilot.pause()
                app.screen.query_one("#title", Input).value = "  "
                await pilot.press("ctrl+s")
                await pilot.pause()
                assert isinstance(app.screen, EditorScreen)

        asyncio.run(scenario())
        assert catalog.get(1).title == "Test Song"


class TestPlayerScreen:
    """Test the now-playing screen against a player with fake audio"""

    def test_play_and_go_back(self, catalog, sample_track, player):
        """Test that Enter starts the track and q stops it"""
        catalog.add(sample_track)
        app = SnatcherApp(catalog, player)

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("enter")
                await pilot.pause(0.3)
                assert isinstance(app.screen, PlayerScreen)
                assert player.current_track().id == 1
                assert player.is_playing()

                await pilot.press("space")
                await pilot.pause()
                assert not player.is_playing()

                await pilot.press("q")
                await pilot.pause()
                assert isinstance(app.screen, TrackListScreen)
                assert player.current_track() is None

        asyncio.run(scenario())

    def test_track_without_url(self, catalog):
        """Test that a track with nothing to stream stays on the list"""
        catalog.add(TrackRecord(artist="A", title="Offline"))
        app = SnatcherApp(catalog, IdlePlayer())

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("enter")
                await pilot.pause()
                assert isinstance(app.screen, TrackListScreen)

        asyncio.run(scenario())

    def test_play_error_shown(self, catalog, sample_track):
        """Test that a refused stream is reported on the player screen"""
        catalog.add(sample_track)
        app = SnatcherApp(catalog, FailingPlayer())

        async def scenario():
            async with app.run_test() as pilot:
                await pilot.pause()
                await pilot.press("enter")
                await pilot.pause(0.3)
                assert isinstance(app.screen, PlayerScreen)
                assert app.screen.status_text == "❌ Playback error"
                assert isinstance(app.screen.playback_error, UpstreamError)

        asyncio.run(scenario())
