"""
Pause control for the stream being played
"""

import time
from typing import Callable, Optional


class PlaybackController:
    """
    Pass-through stream decorator holding the paused flag.

    The audio device reads through the controller on every buffer pull.
    While paused it hands back silence without touching the decoder, so the
    position holds still and no network data is consumed. The flag is only
    read or written under the sink lock passed in at construction; toggling
    it never performs I/O.

    Pause spans are timed when the flag flips, so the monitor can subtract
    exactly the time spent paused from the listening time.
    """

    def __init__(self, stream, lock, clock: Callable[[], float] = time.monotonic) -> None:
        self.stream = stream
        self.paused = False
        self.paused_total = 0.0
        self.pause_started: Optional[float] = None
        self._lock = lock
        self._clock = clock

    def read(self, frames: int) -> bytes:
        with self._lock:
            paused = self.paused
        if paused:
            return b"\x00" * (frames * self.stream.frame_size)
        return self.stream.read(frames)

    def toggle(self) -> bool:
        """Flip the paused flag and return its new value"""
        with self._lock:
            now = self._clock()
            self.paused = not self.paused
            if self.paused:
                self.pause_started = now
            elif self.pause_started is not None:
                self.paused_total += now - self.pause_started
                self.pause_started = None
            return self.paused

    def paused_time(self, now: float) -> float:
        """Seconds spent paused up to ``now``, including a pause in progress"""
        with self._lock:
            paused = self.paused_total
            if self.pause_started is not None:
                paused += max(0.0, now - self.pause_started)
            return paused

    def position(self) -> int:
        return self.stream.position()

    def length(self) -> int:
        return self.stream.length()
