"""
MP3 decoding for streamed playback

Wraps miniaudio's streaming decoder around a StreamingReader. The decoder
pulls compressed bytes through a StreamableSource adapter and yields signed
16-bit PCM; ``DecodedStream`` re-chunks that PCM into exactly the number of
frames the audio device asks for and counts how many frames it delivered,
which is the playback position the monitor reports.

Network input is not seekable, so neither is the decoded stream: the only
way through a track is forward.
"""

import io
import threading
from dataclasses import dataclass
from typing import Optional

import miniaudio
from mutagen import MutagenError
from mutagen.mp3 import MP3

from ..core.exceptions import DecodeError, SnatcherError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Bytes read up front to learn sample rate and bitrate from the first MPEG frame
PROBE_SIZE = 64 * 1024
FRAMES_PER_READ = 1024
SAMPLE_WIDTH = 2  # signed 16-bit
# How long close() waits for a read in progress on the audio thread
CLOSE_TIMEOUT = 2.0


@dataclass
class StreamInfo:
    """Header facts about an MP3 stream"""
    sample_rate: int
    channels: int
    bitrate: int  # bits per second, 0 if unknown


def probe_mp3(data: bytes) -> Optional[StreamInfo]:
    """
    Read stream parameters from the beginning of an MP3 file

    Args:
        data: Leading bytes of the file (ID3 tag plus the first frames)

    Returns:
        StreamInfo, or None if no MPEG frame header was found
    """
    try:
        info = MP3(io.BytesIO(data)).info
    except (MutagenError, EOFError, ValueError) as e:
        logger.debug(f"MP3 probe failed: {e}")
        return None
    return StreamInfo(sample_rate=info.sample_rate, channels=info.channels, bitrate=info.bitrate or 0)


class ReaderSource(miniaudio.StreamableSource):
    """
    Feeds a byte reader into miniaudio, replaying the probed prefix first.

    ``read`` runs inside the decoder's C callback, where an exception cannot
    propagate; failures are recorded on ``error`` and reported as end of
    stream instead.
    """

    def __init__(self, reader, prefix: bytes = b"") -> None:
        self._reader = reader
        self._prefix = prefix
        self.error: Optional[Exception] = None

    def read(self, num_bytes: int) -> bytes:
        if self._prefix:
            chunk, self._prefix = self._prefix[:num_bytes], self._prefix[num_bytes:]
            return chunk
        try:
            return self._reader.read(num_bytes)
        except Exception as e:
            if self.error is None and not getattr(self._reader, 'closed', False):
                logger.warning(f"Stream read failed: {e}")
                self.error = e
            return b""

    def close(self) -> None:
        self._reader.close()


class DecodedStream:
    """
    PCM stream decoded from a network MP3

    Attributes:
        sample_rate: Output sample rate in Hz
        channels: Output channel count
        frame_size: Bytes per PCM frame
    """

    def __init__(self, generator, source: ReaderSource, sample_rate: int, channels: int,
                 total_frames: int = 0, first_chunk: bytes = b"") -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.frame_size = channels * SAMPLE_WIDTH
        self._generator = generator
        self._source = source
        self._carry = bytearray(first_chunk)
        self._position = 0
        self._length = total_frames
        self._finished = False
        self._closed = False
        self._read_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def error(self) -> Optional[Exception]:
        """Error that ended the stream early, if any"""
        return self._source.error

    def position(self) -> int:
        """Frames delivered to the output so far"""
        return self._position

    def length(self) -> int:
        """Estimated total frames, 0 when unknown"""
        return self._length

    def seek(self, frame: int) -> int:
        """
        Skip forward to ``frame`` by decoding and discarding audio

        Network input has no random access, so only forward seeks work.

        Returns:
            The new position; less than ``frame`` if the stream ended first

        Raises:
            ValueError: If ``frame`` is behind the current position
        """
        if frame < self._position:
            raise ValueError(f"Cannot seek backwards in a network stream ({frame} < {self._position})")
        while self._position < frame:
            step = min(frame - self._position, FRAMES_PER_READ)
            if not self.read(step):
                break
        return self._position

    def read(self, frames: int) -> bytes:
        """
        Decode up to ``frames`` frames

        Blocks while the network catches up. Returns fewer bytes than asked
        only at the end of the stream, and b"" once it is exhausted or closed.
        """
        want = frames * self.frame_size
        with self._read_lock:
            if self._closed:
                return b""
            while len(self._carry) < want and not self._finished:
                try:
                    chunk = self._generator.send(frames)
                except StopIteration:
                    self._finished = True
                except miniaudio.MiniaudioError as e:
                    if self._source.error is None:
                        self._source.error = DecodeError(f"Decoding failed mid-stream: {e}")
                    self._finished = True
                else:
                    self._carry += chunk.tobytes()

            out = bytes(self._carry[:want])
            del self._carry[:want]
            self._position += len(out) // self.frame_size
            return out

    def close(self) -> None:
        """
        Stop decoding and release the connection

        Closing the source first wakes a read blocked on the network, so the
        decoder can then be shut down from this thread.
        """
        if self._closed:
            return
        self._closed = True
        self._source.close()

        if self._read_lock.acquire(timeout=CLOSE_TIMEOUT):
            try:
                self._generator.close()
            finally:
                self._read_lock.release()
        else:
            logger.debug("Decoder still busy after close; leaving it to wind down")


def decode_mp3(
    reader,
    sample_rate: Optional[int] = None,
    channels: int = 2,
    default_sample_rate: int = 44100,
    frames_per_read: int = FRAMES_PER_READ,
) -> DecodedStream:
    """
    Start decoding an MP3 byte stream

    The first block of PCM is decoded before returning so that a stream
    which is not MP3 at all fails here rather than on the audio thread.
    The caller keeps ownership of ``reader`` if this raises.

    Args:
        reader: Byte stream with ``read(n)``, ``close()`` and optionally ``content_length``
        sample_rate: Output rate; None keeps the stream's native rate
        channels: Output channel count
        default_sample_rate: Native rate to assume if the header cannot be probed
        frames_per_read: Frames decoded per step

    Returns:
        DecodedStream positioned at the start of the track

    Raises:
        DecodeError: If the data is empty, unreadable or not MP3
    """
    try:
        prefix = reader.read(PROBE_SIZE)
    except (SnatcherError, OSError, ValueError) as e:
        raise DecodeError(f"Cannot read audio stream: {e}") from e
    if not prefix:
        raise DecodeError("Audio stream is empty")

    info = probe_mp3(prefix)
    native_rate = info.sample_rate if info else default_sample_rate
    target_rate = sample_rate or native_rate

    source = ReaderSource(reader, prefix)
    try:
        generator = miniaudio.stream_any(
            source,
            source_format=miniaudio.FileFormat.MP3,
            output_format=miniaudio.SampleFormat.SIGNED16,
            nchannels=channels,
            sample_rate=target_rate,
            frames_to_read=frames_per_read,
        )
        first_chunk = next(generator)
    except StopIteration:
        raise DecodeError("Audio stream contains no decodable frames")
    except miniaudio.MiniaudioError as e:
        raise DecodeError(f"Cannot decode audio stream: {e}") from e

    if source.error is not None:
        generator.close()
        raise DecodeError(f"Cannot read audio stream: {source.error}") from source.error

    total_frames = 0
    content_length = getattr(reader, 'content_length', 0)
    if info and info.bitrate and content_length:
        total_frames = int(content_length * 8 / info.bitrate * target_rate)

    logger.debug(
        f"Decoding MP3: native {native_rate} Hz, output {target_rate} Hz, "
        f"{info.bitrate if info else '?'} bps, ~{total_frames} frames"
    )
    return DecodedStream(generator, source, target_rate, channels, total_frames, first_chunk.tobytes())
