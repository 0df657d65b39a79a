"""
Shared reporter contract and status formatting

Both front ends (the CLI ticker and the TUI player screen) consume the
Player's events and render the same information. The formatting helpers
here keep the two in agreement.
"""

from typing import Optional, Protocol

from ..catalog.catalog import Catalog
from ..catalog.models import TrackRecord
from ..core.exceptions import SnatcherError
from ..playback.player import ClosedEvent, FinishedEvent, PlayerEvent, ProgressEvent
from ..playback.status import Status
from ..utils.helpers import format_clock
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Position saving thresholds (seconds)
SAVE_MIN_POSITION = 5
SAVE_MIN_REMAINING = 10


class StatusReporter(Protocol):
    """Anything that renders playback progress for the user"""

    def show_status(self, status: Status) -> None:
        ...

    def show_finished(self) -> None:
        ...

    def show_error(self, error: Exception) -> None:
        ...


def report_event(reporter: StatusReporter, event: Optional[PlayerEvent]) -> bool:
    """
    Hand one Player event to a reporter

    A torn down session is neither finished nor failed, so it reaches no
    reporter method.

    Args:
        reporter: Front end to render the event
        event: Result of Player.listen, None when the wait timed out

    Returns:
        True once the session is over and listening should stop
    """
    if isinstance(event, ProgressEvent):
        reporter.show_status(event.status)
        return False
    if isinstance(event, FinishedEvent):
        if event.error is not None:
            reporter.show_error(event.error)
        elif not event.stopped:
            reporter.show_finished()
        return True
    return isinstance(event, ClosedEvent)


def progress_percent(status: Status) -> str:
    """Percent played, "??%" while the duration is unknown"""
    fraction = status.fraction
    if fraction is None:
        return "??%"
    return f"{fraction * 100:.1f}%"


def status_icon(status: Status) -> str:
    """Pick the leading icon of the status line"""
    if not status.is_playing:
        return "⏸️"
    if status.stuck_count > 3:
        return "⚠️"
    if 0.98 <= status.speed <= 1.02:
        return "✅"
    return "⏱️"


def format_time_pair(status: Status) -> str:
    total = format_clock(status.total) if status.total > 0 else "--:--:--"
    return f"{format_clock(status.current)} / {total}"


def format_status_line(status: Status) -> str:
    """
    Render a one-line summary of a Status

    While paused the speed is left out and the status reads "Paused".

    Example:
        "✅ 42.0% | 00:01:24 / 00:03:20 | Speed: 1.00x | Status: Streaming"
    """
    if not status.is_playing:
        return f"{status_icon(status)} {progress_percent(status)} | {format_time_pair(status)} | Status: Paused"
    return (
        f"{status_icon(status)} {progress_percent(status)} | {format_time_pair(status)} | "
        f"Speed: {status.speed:.2f}x | Status: {status.stream_status}"
    )


def should_save_position(current: float, total: float) -> bool:
    """
    Decide whether a listening position is worth writing to the catalog

    Positions right at the start or near the end of a track are not saved.

    Args:
        current: Position in seconds
        total: Track duration in seconds, 0 if unknown

    Returns:
        True if more than 5 seconds were played and more than 10 remain
    """
    if current <= SAVE_MIN_POSITION:
        return False
    if total <= 0:
        return False
    return total - current > SAVE_MIN_REMAINING


def saved_position_hint(position: int) -> Optional[str]:
    """Text shown for a track that has a saved position, or None"""
    if position <= 0:
        return None
    return f"Last stopped at {format_clock(position)}"


def save_position(catalog: Catalog, track: TrackRecord, status: Optional[Status]) -> bool:
    """
    Write the listening position of ``track`` back to the catalog

    Failures are logged, never raised.

    Args:
        catalog: Catalog holding the track
        track: Track that was playing
        status: Last status seen for it, None if playback never reported

    Returns:
        True if a position was saved
    """
    if status is None or not should_save_position(status.current, status.total):
        return False
    position = int(status.current)
    try:
        catalog.update_playback_position(track.id, position)
        catalog.save()
    except SnatcherError as e:
        logger.warning(f"Could not save position of track {track.id}: {e}")
        return False
    logger.debug(f"Saved position {position}s for track {track.id}")
    return True
