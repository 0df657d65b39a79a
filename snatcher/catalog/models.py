"""
Data model for catalog entries

A TrackRecord describes one remote MP3 the user has added, either by
uploading a local file or by downloading audio from a video URL. The field
names double as the YAML keys of the catalog file.
"""

from dataclasses import dataclass, asdict, replace, fields
from typing import Dict, Any


@dataclass
class TrackRecord:
    """
    One track in the catalog

    Attributes:
        id: Catalog-assigned identifier, unique and increasing
        artist: Artist name
        title: Track title
        album: Album name, may be empty
        length: Duration in seconds, 0 when unknown
        file_size: Size of the uploaded file in bytes
        url: Public URL the track is streamed from
        source_url: Page the audio was downloaded from, empty for local uploads
        playback_position: Last listening position in seconds (resume hint only)
    """
    id: int = 0
    artist: str = ""
    title: str = ""
    album: str = ""
    length: int = 0
    file_size: int = 0
    url: str = ""
    source_url: str = ""
    playback_position: int = 0

    @property
    def display_name(self) -> str:
        """Human readable "Artist - Title" label"""
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.title or self.artist or f"Track {self.id}"

    def copy(self) -> 'TrackRecord':
        """Return an independent snapshot of this record"""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the mapping stored in the catalog file"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrackRecord':
        """
        Build a record from a catalog mapping

        Missing keys fall back to zero values; unknown keys are ignored.

        Args:
            data: Mapping loaded from YAML

        Returns:
            TrackRecord instance
        """
        values = {}
        for field in fields(cls):
            if field.name not in data or data[field.name] is None:
                continue
            raw = data[field.name]
            values[field.name] = int(raw) if field.type in (int, 'int') else str(raw)
        return cls(**values)
