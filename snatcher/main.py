"""
Main CLI interface for Snatcher

This module provides the command-line interface for managing and playing the
track catalog. It is the primary entry point for user interactions.

Commands:
- add: upload a local MP3 and add it to the catalog
- list: show the catalog
- play: stream a track with a live progress line
- download: fetch the audio of a video, optionally adding it to the catalog
- delete: remove a track from storage and the catalog
- edit: change a track's artist, title or album
- tui: browse and play the catalog in a full-screen interface
"""

import sys
import click
import signal
import functools
import threading
from contextlib import contextmanager
from pathlib import Path

from . import __version__
from .audio.output import AudioOutput
from .catalog.catalog import get_catalog, reset_catalog
from .core.exceptions import CancelledError, SnatcherError, ValidationError
from .config.settings import get_settings, reload_settings
from .playback.player import Player
from .reporters.base import save_position
from .reporters.ticker import Outcome, TickerReporter
from .storage.s3 import S3Storage
from .uploader.service import UploadService
from .utils.logger import configure_from_settings, create_operation_logger, get_logger
from .utils.helpers import format_clock, format_file_size, truncate_string
from .utils.validation import parse_track_id
from .youtube.downloader import YouTubeDownloader, convert_to_mp3


logger = get_logger(__name__)


def print_banner():
    """Print application banner to console"""
    banner = """
╔═══════════════════════════════════════════════╗
║                   Snatcher                    ║
║                                               ║
║   Stream your MP3 library from the cloud     ║
║                                               ║
╚═══════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Expected failures (SnatcherError) are shown as a single red line;
    anything else is logged with its traceback to the log file as well.

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function with error handling
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (KeyboardInterrupt, CancelledError):
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except SnatcherError as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
        except Exception as e:
            logger.error(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _upload_service(settings) -> UploadService:
    storage = S3Storage(settings.require_storage())
    return UploadService(storage, get_catalog(), key_prefix=settings.upload.key_prefix)


@contextmanager
def cancel_on_signal():
    """
    Yield a cancellation event that SIGINT and SIGTERM set

    Outside the main thread no handlers can be installed and the event
    simply never fires.
    """
    cancel_event = threading.Event()
    previous = {}
    if threading.current_thread() is threading.main_thread():
        def _handle(signum, frame):
            logger.debug(f"Received signal {signum}, cancelling")
            cancel_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, _handle)
    try:
        yield cancel_event
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def _new_player(settings):
    output = AudioOutput(
        buffer_msec=settings.playback.sink_buffer_msec,
        channels=settings.playback.channels,
    )
    return output, Player(output, settings.playback, settings.network)


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
@handle_error
def cli(ctx, version, verbose, config):
    """
    Snatcher - stream your MP3 library from S3-compatible storage

    Upload tracks once, then play them anywhere straight from the bucket.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"Snatcher v{__version__}")
        return

    if config:
        reload_settings(config)
        reset_catalog()

    settings = get_settings()
    if verbose:
        ctx.obj['verbose'] = True
        settings.logging.level = "DEBUG"

    # The TUI configures logging itself, without console output
    if ctx.invoked_subcommand != 'tui':
        configure_from_settings()
    if verbose:
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.argument('file_path', type=click.Path())
@handle_error
def add(file_path):
    """
    Upload a local MP3 file and add it to the catalog

    Artist, title and album come from the file's ID3 tags, falling back to
    an "Artist - Title" file name.
    """
    settings = get_settings()
    service = _upload_service(settings)

    name = Path(file_path).name
    operation = create_operation_logger(__name__, f"Uploading {name}")
    operation.start(f"📤 Uploading {name}...")
    try:
        with cancel_on_signal() as cancel_event:
            result = service.upload_file(file_path, cancel_event, progress_callback=operation.progress)
    except SnatcherError as e:
        operation.error(str(e))
        raise
    operation.complete(f"✅ Uploaded to {result.url}")

    track = service.add_to_catalog(result)
    click.echo(f"🎵 Added track {track.id}: {track.display_name}")
    if track.length:
        click.echo(f"   Duration: {format_clock(track.length)}, size: {format_file_size(track.file_size)}")


@cli.command(name='list')
@handle_error
def list_tracks():
    """
    List the tracks in the catalog
    """
    tracks = get_catalog().list()
    if not tracks:
        click.echo("No tracks in the catalog. Add one with 'snatcher add <file.mp3>'.")
        return

    header = f"{'ID':<5} {'Artist':<20} {'Title':<30} {'Album':<20} {'Duration':>9} {'Size':>10}"
    click.echo(click.style(header, bold=True))
    click.echo("-" * len(header))
    for track in tracks:
        duration = format_clock(track.length) if track.length > 0 else "N/A"
        size = format_file_size(track.file_size) if track.file_size > 0 else "N/A"
        click.echo(
            f"{track.id:<5} {truncate_string(track.artist, 20):<20} "
            f"{truncate_string(track.title, 30):<30} {truncate_string(track.album, 20):<20} "
            f"{duration:>9} {size:>10}"
        )
    click.echo(f"\nTotal: {len(tracks)} tracks")


@cli.command()
@click.argument('track_id')
@handle_error
def play(track_id):
    """
    Stream a track from the catalog

    Space pauses and resumes, Ctrl+C stops.
    """
    track_id = parse_track_id(track_id)
    settings = get_settings()
    catalog = get_catalog()
    track = catalog.get(track_id)
    if not track.url:
        raise ValidationError(f"Track {track_id} has no URL")

    output, player = _new_player(settings)
    reporter = TickerReporter(player)
    try:
        outcome = reporter.run(track)
    finally:
        player.close()
        output.close()

    if outcome is Outcome.INTERRUPTED and settings.playback.save_position:
        if save_position(catalog, track, reporter.last_status):
            click.echo(f"📍 Position saved at {format_clock(reporter.last_status.current)}")


@cli.command()
@click.argument('url')
@click.option('--add', 'add_to_catalog', is_flag=True, help='Convert to MP3, upload and add to the catalog')
@handle_error
def download(url, add_to_catalog):
    """
    Download the audio track of a video

    The file is saved to the configured download directory. With --add it is
    also converted to MP3, uploaded and added to the catalog.
    """
    settings = get_settings()
    add_to_catalog = add_to_catalog or settings.download.add_to_catalog
    service = _upload_service(settings) if add_to_catalog else None

    downloader = YouTubeDownloader(settings.download, settings.network)
    operation = create_operation_logger(__name__, "Downloading audio")
    operation.start(f"⬇️  Downloading audio from {url}...")
    try:
        with cancel_on_signal() as cancel_event:
            result = downloader.download(url, cancel_event, progress_callback=operation.progress)
    except SnatcherError as e:
        operation.error(str(e))
        raise
    operation.complete(f"✅ Saved '{result.title}' to {result.path}")

    if service is None:
        return

    mp3_path = convert_to_mp3(result.path, settings.download.mp3_bitrate)
    operation = create_operation_logger(__name__, f"Uploading {mp3_path.name}")
    operation.start(f"📤 Uploading {mp3_path.name}...")
    try:
        with cancel_on_signal() as cancel_event:
            upload = service.upload_file(mp3_path, cancel_event, progress_callback=operation.progress)
    except SnatcherError as e:
        operation.error(str(e))
        raise
    operation.complete(f"✅ Uploaded to {upload.url}")

    upload.tags.title = result.title
    if result.author:
        upload.tags.artist = result.author
    if not upload.info.duration:
        upload.info.duration = result.duration

    track = service.add_to_catalog(upload, source_url=result.source_url)
    click.echo(f"🎵 Added track {track.id}: {track.display_name}")


@cli.command()
@click.argument('track_id')
@handle_error
def delete(track_id):
    """
    Delete a track from storage and the catalog

    A failed storage deletion is reported as a warning; the track is still
    removed from the catalog.
    """
    track_id = parse_track_id(track_id)
    settings = get_settings()
    catalog = get_catalog()
    track = catalog.get(track_id)

    click.echo(f"🗑️  Deleting track: {track.display_name}")

    if track.url:
        try:
            storage = S3Storage(settings.require_storage())
            storage.delete(storage.key_from_url(track.url))
            click.echo("✅ File deleted from storage")
        except SnatcherError as e:
            logger.warning(f"Storage deletion failed for track {track_id}: {e}")
            click.echo(click.style(f"⚠️  Could not delete the file from storage: {e}", fg='yellow'))

    catalog.delete(track_id)
    catalog.save()
    click.echo("✅ Track removed from the catalog")


@cli.command()
@click.argument('track_id')
@click.option('--artist', help='New artist')
@click.option('--title', help='New title')
@click.option('--album', help='New album')
@handle_error
def edit(track_id, artist, title, album):
    """
    Change the artist, title or album of a track
    """
    track_id = parse_track_id(track_id)
    if artist is None and title is None and album is None:
        raise ValidationError("Nothing to change: pass --artist, --title and/or --album")

    catalog = get_catalog()
    track = catalog.edit(track_id, artist=artist, title=title, album=album)
    catalog.save()
    click.echo(f"✅ Updated track {track.id}: {track.display_name}" + (f" [{track.album}]" if track.album else ""))


@cli.command()
@handle_error
def tui():
    """
    Browse and play the catalog in a full-screen interface
    """
    from .tui.app import SnatcherApp

    configure_from_settings(console_output=False)
    settings = get_settings()
    catalog = get_catalog()
    output, player = _new_player(settings)
    try:
        SnatcherApp(catalog, player).run()
    finally:
        player.close()
        output.close()


# Entry point for module execution
if __name__ == '__main__':
    cli()
