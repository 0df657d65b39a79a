"""Test the command-line interface"""

import logging
import os
import signal

import pytest
import yaml
from click.testing import CliRunner

from snatcher import __version__
from snatcher.catalog.catalog import Catalog, reset_catalog
from snatcher.catalog.models import TrackRecord
from snatcher.config import settings as settings_module
from snatcher.main import cancel_on_signal, cli


@pytest.fixture
def cli_env(temp_dir, monkeypatch):
    """Config file and catalog in a temporary directory"""
    for name in ('SNATCHER_CONFIG', 'SNATCHER_DATA_FILE', 'AWS_ACCESS_KEY_ID',
                 'AWS_SECRET_ACCESS_KEY', 'AWS_ENDPOINT_URL', 'SNATCHER_BUCKET'):
        monkeypatch.delenv(name, raising=False)

    data_file = temp_dir / "catalog.yaml"
    config_file = temp_dir / "config.yaml"
    config_file.write_text(yaml.safe_dump({
        'paths': {'data_file': str(data_file)},
        'logging': {'file': str(temp_dir / "snatcher.log"), 'console_output': False},
    }))

    yield config_file, data_file

    settings_module._settings = None
    reset_catalog()
    for handler in logging.getLogger().handlers[:]:
        handler.close()
        logging.getLogger().removeHandler(handler)


def seed(data_file, *tracks):
    catalog = Catalog(data_file)
    for track in tracks:
        catalog.add(track)
    catalog.save()


def invoke(config_file, *args):
    return CliRunner().invoke(cli, ['--config', str(config_file)] + list(args))


class TestListCommand:
    """Test snatcher list"""

    def test_empty_catalog(self, cli_env):
        """Test listing an empty catalog"""
        config_file, _ = cli_env
        result = invoke(config_file, 'list')

        assert result.exit_code == 0
        assert "No tracks in the catalog" in result.output

    def test_lists_tracks(self, cli_env, sample_track):
        """Test the catalog table"""
        config_file, data_file = cli_env
        seed(data_file, sample_track, TrackRecord(artist="Other", title="Unknown Length"))

        result = invoke(config_file, 'list')

        assert result.exit_code == 0
        assert "Test Song" in result.output
        assert "00:03:30" in result.output
        assert "N/A" in result.output
        assert "Total: 2 tracks" in result.output


class TestEditCommand:
    """Test snatcher edit"""

    def test_nothing_to_change(self, cli_env, sample_track):
        """Test that edit without options fails"""
        config_file, data_file = cli_env
        seed(data_file, sample_track)

        result = invoke(config_file, 'edit', '1')
        assert result.exit_code == 1
        assert "Nothing to change" in result.output

    def test_edit_title(self, cli_env, sample_track):
        """Test that edits are saved"""
        config_file, data_file = cli_env
        seed(data_file, sample_track)

        result = invoke(config_file, 'edit', '1', '--title', 'Renamed', '--album', 'Live')

        assert result.exit_code == 0
        assert "Updated track 1" in result.output
        track = Catalog(data_file).load().get(1)
        assert track.title == "Renamed"
        assert track.album == "Live"

    def test_edit_unknown_track(self, cli_env):
        """Test editing a missing track"""
        config_file, _ = cli_env
        result = invoke(config_file, 'edit', '9', '--title', 'X')

        assert result.exit_code == 1
        assert "not found" in result.output


class TestPlayCommand:
    """Test snatcher play argument handling"""

    def test_invalid_id(self, cli_env):
        """Test a non-numeric track ID"""
        config_file, _ = cli_env
        result = invoke(config_file, 'play', 'abc')

        assert result.exit_code == 1
        assert "Invalid track ID" in result.output

    def test_unknown_track(self, cli_env):
        """Test a track that is not in the catalog"""
        config_file, _ = cli_env
        result = invoke(config_file, 'play', '3')

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_track_without_url(self, cli_env):
        """Test a catalog entry that has nothing to stream"""
        config_file, data_file = cli_env
        seed(data_file, TrackRecord(artist="A", title="No URL"))

        result = invoke(config_file, 'play', '1')
        assert result.exit_code == 1
        assert "has no URL" in result.output


class TestDeleteCommand:
    """Test snatcher delete"""

    def test_storage_failure_still_removes(self, cli_env, sample_track):
        """Test that a storage error does not keep the catalog entry"""
        config_file, data_file = cli_env
        seed(data_file, sample_track)

        result = invoke(config_file, 'delete', '1')

        assert result.exit_code == 0
        assert "Could not delete the file from storage" in result.output
        assert "removed from the catalog" in result.output
        assert len(Catalog(data_file).load()) == 0


class TestGroup:
    """Test group options"""

    def test_version(self, cli_env):
        """Test --version"""
        config_file, _ = cli_env
        result = invoke(config_file, '--version')

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_without_command(self, cli_env):
        """Test the banner and help with no subcommand"""
        config_file, _ = cli_env
        result = invoke(config_file)

        assert result.exit_code == 0
        assert "Commands:" in result.output
        assert "play" in result.output

    def test_download_requires_storage_for_add(self, cli_env):
        """Test that --add checks the storage settings first"""
        config_file, _ = cli_env
        result = invoke(config_file, 'download', 'dQw4w9WgXcQ', '--add')

        assert result.exit_code == 1
        assert "Missing storage settings" in result.output


class TestCancelOnSignal:
    """Test the signal-driven cancellation token"""

    def test_sigterm_sets_event(self):
        """Test that SIGTERM fires the token instead of killing the process"""
        before = signal.getsignal(signal.SIGTERM)
        with cancel_on_signal() as cancel_event:
            os.kill(os.getpid(), signal.SIGTERM)
            assert cancel_event.wait(1.0)

        assert signal.getsignal(signal.SIGTERM) is before
