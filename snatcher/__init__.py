"""
Snatcher: a personal music library streamed from object storage

Snatcher keeps a small YAML catalog of MP3 tracks that live in an
S3-compatible bucket and plays them straight from their URLs, without
downloading the whole file first.

## Workflow

1. ``snatcher add song.mp3`` reads the ID3 tags, uploads the file to the
   configured bucket and records it in the catalog.
2. ``snatcher download <video-url> --add`` fetches the audio track of a
   video, converts it to MP3 and adds it the same way.
3. ``snatcher play <id>`` streams a track with a one-line progress display;
   ``snatcher tui`` offers the same in a full-screen browser.

## Package Layout

- ``config``: YAML/environment settings
- ``catalog``: track records and their YAML persistence
- ``streaming``: buffered HTTP reader feeding the decoder
- ``audio``: MP3 decoding, the output device and local tag reading
- ``playback``: the player state machine and its progress monitor
- ``terminal``: single-key input while playing in a terminal
- ``reporters``: the CLI progress ticker and shared status formatting
- ``tui``: the textual application
- ``storage``, ``uploader``, ``youtube``: getting tracks into the bucket
"""

__version__ = "1.0.0"

__author__ = "Snatcher Contributors"

__description__ = "Stream a personal MP3 library from S3-compatible storage"

__all__ = [
    "__version__",
    "__author__",
    "__description__",
]
