"""
Local MP3 tag and file information

Reads the artist/title/album tags used to create catalog entries for
uploaded files, plus size and duration. Files without usable tags fall
back to the "Artist - Title.mp3" naming convention.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from mutagen import MutagenError
from mutagen.id3 import ID3
from mutagen.mp3 import MP3

from ..core.exceptions import DecodeError, NotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_ARTIST = "Unknown Artist"


@dataclass
class TrackTags:
    """Descriptive tags of a track"""
    artist: str = ""
    title: str = ""
    album: str = ""


@dataclass
class FileInfo:
    """Physical properties of an audio file"""
    size: int = 0
    duration: float = 0.0  # seconds


class MetadataExtractor:
    """Extract tags and file information from local MP3 files"""

    def extract(self, file_path: Union[str, Path]) -> TrackTags:
        """
        Read artist, title and album from the file's ID3 tag

        Fields missing from the tag are filled in from the file name.
        Never raises: unreadable files yield the file-name fallback.

        Args:
            file_path: Path to the MP3 file

        Returns:
            TrackTags for the file
        """
        fallback = tags_from_filename(file_path)

        try:
            audio = MP3(str(file_path), ID3=ID3)
        except (MutagenError, OSError) as e:
            logger.debug(f"Could not read tags from {file_path}: {e}")
            return fallback

        if not audio.tags:
            return fallback

        tags = TrackTags(
            artist=_frame_text(audio.tags, 'TPE1'),
            title=_frame_text(audio.tags, 'TIT2'),
            album=_frame_text(audio.tags, 'TALB'),
        )
        if not tags.title:
            tags.title = fallback.title
        if not tags.artist:
            tags.artist = fallback.artist
        return tags

    def file_info(self, file_path: Union[str, Path]) -> FileInfo:
        """
        Get size and duration of an MP3 file

        Args:
            file_path: Path to the MP3 file

        Returns:
            FileInfo with size in bytes and duration in seconds

        Raises:
            NotFoundError: If the file does not exist
            DecodeError: If the file is not a readable MP3
        """
        path = Path(file_path)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            raise NotFoundError(f"File not found: {path}")

        try:
            audio = MP3(str(path))
        except MutagenError as e:
            raise DecodeError(f"Cannot read MP3 file {path.name}: {e}") from e

        return FileInfo(size=size, duration=audio.info.length if audio.info else 0.0)


def tags_from_filename(file_path: Union[str, Path]) -> TrackTags:
    """
    Derive tags from an "Artist - Title" style file name

    Args:
        file_path: Path or file name

    Returns:
        TrackTags; artist is "Unknown Artist" if the name has no separator
    """
    stem = Path(file_path).stem
    parts = stem.split(" - ")
    if len(parts) >= 2:
        return TrackTags(artist=parts[0].strip(), title=" - ".join(parts[1:]).strip())
    return TrackTags(artist=UNKNOWN_ARTIST, title=stem)


def _frame_text(tags, frame_id: str) -> str:
    frame = tags.get(frame_id)
    if frame is None or not frame.text:
        return ""
    return str(frame.text[0]).strip()
