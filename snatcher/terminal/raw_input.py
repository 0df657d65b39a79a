"""
Single-key terminal input for interactive playback

``enable_raw_input`` switches the terminal to cbreak mode (no echo, no line
buffering) so one key press is readable at once, and returns a handle that
restores the previous mode. ``KeyReader`` watches stdin on a background
thread and reports recognised keys.

Raw mode is a convenience: on a non-tty stdin, on platforms without
termios, or when the terminal refuses the change, everything degrades to a
no-op instead of failing playback.
"""

import os
import select
import sys
import threading
from typing import Callable, Iterable, Optional

try:
    import termios
    import tty
except ImportError:  # Windows
    termios = None
    tty = None

from ..utils.logger import get_logger

logger = get_logger(__name__)

TOGGLE_KEYS = (b" ", b"\n", b"\r")
POLL_INTERVAL = 0.1


class RawInputHandle:
    """
    Scoped raw-mode acquisition

    ``release()`` restores the saved terminal attributes and may be called
    any number of times. Usable as a context manager.
    """

    def __init__(self, fd: Optional[int] = None, saved=None) -> None:
        self.fd = fd
        self._saved = saved
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._saved is not None

    def release(self) -> None:
        with self._lock:
            saved, self._saved = self._saved, None
        if saved is None:
            return
        try:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, saved)
        except (termios.error, OSError, ValueError) as e:
            logger.debug(f"Could not restore terminal mode: {e}")

    def __enter__(self) -> 'RawInputHandle':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


def enable_raw_input(stream=None) -> RawInputHandle:
    """
    Disable echo and canonical mode on ``stream`` (stdin by default)

    Args:
        stream: Terminal input stream

    Returns:
        RawInputHandle; inert if the terminal could not be switched
    """
    stream = stream or sys.stdin
    if termios is None:
        return RawInputHandle()

    try:
        if not stream.isatty():
            return RawInputHandle()
        fd = stream.fileno()
        saved = termios.tcgetattr(fd)
        tty.setcbreak(fd, termios.TCSANOW)
    except (termios.error, OSError, ValueError, AttributeError) as e:
        logger.debug(f"Raw terminal input unavailable: {e}")
        return RawInputHandle()

    return RawInputHandle(fd, saved)


class KeyReader:
    """
    Background reader delivering single key presses

    Args:
        on_key: Called with the key byte for every recognised key
        stream: Input stream (stdin by default)
        keys: Bytes that trigger ``on_key``; anything else is ignored
    """

    def __init__(self, on_key: Callable[[bytes], None], stream=None,
                 keys: Iterable[bytes] = TOGGLE_KEYS) -> None:
        self.on_key = on_key
        self.stream = stream or sys.stdin
        self.keys = set(keys)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        """
        Start reading

        Returns:
            False if the stream has no usable file descriptor
        """
        try:
            fd = self.stream.fileno()
        except (OSError, ValueError, AttributeError):
            logger.debug("Key reader disabled: input has no file descriptor")
            return False

        self._thread = threading.Thread(target=self._run, args=(fd,), name="snatcher-keys", daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self, fd: int) -> None:
        while not self._stop.is_set():
            try:
                ready, _, _ = select.select([fd], [], [], POLL_INTERVAL)
                if not ready:
                    continue
                key = os.read(fd, 1)
            except (OSError, ValueError) as e:
                logger.debug(f"Key reader stopped: {e}")
                return
            if not key:
                return  # EOF
            if key in self.keys:
                try:
                    self.on_key(key)
                except Exception:
                    logger.exception("Key handler failed")
