"""
Playback status snapshots and the bookkeeping behind them

The monitor loop samples the decoded stream once per tick and turns the raw
frame counts into a ``Status``. The arithmetic lives in ``MonitorState`` so
it can be driven with a fake clock in tests.
"""

from dataclasses import dataclass
from typing import Optional

from ..streaming.reader import stream_status_text


@dataclass
class Status:
    """
    One progress sample

    Attributes:
        current: Position in seconds
        total: Track duration in seconds, 0 if unknown
        is_playing: False while paused
        speed: Position advanced per second of listening time (1.0 = real time)
        stuck_count: Consecutive ticks without progress while not paused
    """
    current: float = 0.0
    total: float = 0.0
    is_playing: bool = False
    speed: float = 0.0
    stuck_count: int = 0

    @property
    def stream_status(self) -> str:
        return stream_status_text(self.stuck_count)

    @property
    def remaining(self) -> float:
        return max(0.0, self.total - self.current) if self.total > 0 else 0.0

    @property
    def fraction(self) -> Optional[float]:
        """Progress between 0 and 1, or None when the duration is unknown"""
        if self.total <= 0:
            return None
        return min(1.0, max(0.0, self.current / self.total))


class MonitorState:
    """
    Per-session accumulator for stall detection and speed measurement.

    Paused time is excluded from listening time. The span is measured by
    the PlaybackController when pause is toggled and handed in on every tick.
    """

    def __init__(self, started_at: float) -> None:
        self.started_at = started_at
        self.last_position = 0
        self.stuck_count = 0

    def listening_time(self, now: float, paused_time: float = 0.0) -> float:
        """Wall-clock seconds since start minus all paused time"""
        return max(0.0, now - self.started_at - paused_time)

    def tick(
        self,
        now: float,
        position: int,
        length: int,
        paused: bool,
        sample_rate: int,
        track_length: int = 0,
        paused_time: float = 0.0,
    ) -> Status:
        """
        Fold one sample into the state and build a Status

        Args:
            now: Monotonic clock reading
            position: Frames played so far
            length: Decoder's estimate of total frames, 0 if unknown
            paused: Controller's paused flag
            sample_rate: Frames per second
            track_length: Catalog duration in seconds, preferred when positive
            paused_time: Seconds spent paused since the session started

        Returns:
            Status for this tick
        """
        if not paused and position == self.last_position:
            self.stuck_count += 1
        else:
            self.stuck_count = 0
        self.last_position = position

        seconds = position / float(sample_rate) if sample_rate else 0.0
        elapsed = self.listening_time(now, paused_time)
        speed = seconds / elapsed if elapsed > 0 and not paused else 0.0

        if track_length > 0:
            total = float(track_length)
        else:
            total = length / float(sample_rate) if sample_rate else 0.0

        return Status(
            current=seconds,
            total=total,
            is_playing=not paused,
            speed=speed,
            stuck_count=self.stuck_count,
        )
