"""
Audio output sink

There is one hardware output per process. ``AudioOutput`` owns it: the
device is opened lazily at the sample rate of the first track and reused
for every later track. Exactly one stream is registered at a time; the
device pulls from it on miniaudio's own playback thread and plays silence
when nothing is registered.

``lock`` is the sink lock. The device thread takes it to look up the
registered stream and its pause flag; the player takes it to toggle pause
and to sample position and length. Reading PCM happens outside the lock so
a slow network never holds it.
"""

import threading
from typing import Callable, Optional

import miniaudio

from ..core.exceptions import SnatcherError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SAMPLE_WIDTH = 2  # signed 16-bit


def _default_device(sample_rate: int, channels: int, buffer_msec: int):
    return miniaudio.PlaybackDevice(
        output_format=miniaudio.SampleFormat.SIGNED16,
        nchannels=channels,
        sample_rate=sample_rate,
        buffersize_msec=buffer_msec,
    )


class AudioOutput:
    """
    Process-wide playback sink

    Args:
        buffer_msec: Hardware buffer size; large values trade latency for smoothness
        channels: Output channel count
        device_factory: ``factory(sample_rate, channels, buffer_msec)`` returning an
            object with ``start(generator)``, ``stop()`` and ``close()``
    """

    def __init__(self, buffer_msec: int = 200, channels: int = 2,
                 device_factory: Optional[Callable] = None) -> None:
        self.buffer_msec = buffer_msec
        self.channels = channels
        self.frame_size = channels * SAMPLE_WIDTH
        self.sample_rate = 0
        self.lock = threading.RLock()
        self._device_factory = device_factory or _default_device
        self._device = None
        self._stream = None
        self._on_complete: Optional[Callable[[], None]] = None
        self._generation = 0

    @property
    def initialized(self) -> bool:
        return self._device is not None

    def init(self, sample_rate: int) -> None:
        """
        Open the output device

        Only the first call has an effect; the device keeps its rate for
        the rest of the process.

        Raises:
            SnatcherError: If no output device can be opened
        """
        with self.lock:
            if self._device is not None:
                return
            try:
                device = self._device_factory(sample_rate, self.channels, self.buffer_msec)
                pull = self._pull()
                next(pull)
                device.start(pull)
            except miniaudio.MiniaudioError as e:
                raise SnatcherError(f"Cannot open audio output: {e}") from e
            self.sample_rate = sample_rate
            self._device = device
        logger.info(f"Audio output opened: {sample_rate} Hz, {self.channels} ch, {self.buffer_msec} ms buffer")

    def play(self, stream, on_complete: Optional[Callable[[], None]] = None) -> None:
        """
        Register ``stream`` as the one stream being played

        Any previously registered stream is dropped without its completion
        callback firing. ``on_complete`` runs on the device thread, once,
        when ``stream.read`` returns no data.
        """
        with self.lock:
            self._generation += 1
            self._stream = stream
            self._on_complete = on_complete

    def clear(self) -> None:
        """Unregister the current stream; its completion callback never fires"""
        with self.lock:
            self._generation += 1
            self._stream = None
            self._on_complete = None

    @property
    def active(self) -> bool:
        with self.lock:
            return self._stream is not None

    def close(self) -> None:
        """Stop and release the device"""
        with self.lock:
            self.clear()
            device, self._device = self._device, None
        if device is not None:
            device.stop()
            device.close()
            logger.debug("Audio output closed")

    def _finish(self, generation: int) -> None:
        with self.lock:
            if generation != self._generation:
                return
            callback = self._on_complete
            self._stream = None
            self._on_complete = None
            self._generation += 1
        if callback is not None:
            try:
                callback()
            except Exception:
                logger.exception("Playback completion callback failed")

    def _pull(self):
        """Device callback generator: receives a frame count, yields PCM bytes"""
        required = yield b""
        while True:
            with self.lock:
                stream = self._stream
                generation = self._generation

            chunk = b""
            if stream is not None:
                try:
                    chunk = stream.read(required)
                except Exception:
                    # The device thread must keep running whatever the stream does
                    logger.exception("Audio stream read failed")
                    chunk = b""
                if not chunk:
                    self._finish(generation)

            need = required * self.frame_size
            if len(chunk) < need:
                chunk = chunk + b"\x00" * (need - len(chunk))
            required = yield chunk
