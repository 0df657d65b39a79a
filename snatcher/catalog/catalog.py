"""
YAML-backed track catalog

The catalog is a single YAML document with a ``tracks`` list. It is small
enough to load fully into memory and rewrite on every change. Writes go
through a temporary file and an atomic rename so an interrupted save never
leaves a truncated catalog behind.

Thread safety: every public method acquires ``self._lock``; the TUI saves
playback positions from a worker thread while the main thread reads.
"""

import os
import tempfile
import threading
from pathlib import Path
from typing import List, Optional, Union

import yaml

from .models import TrackRecord
from ..core.exceptions import CatalogError, NotFoundError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class Catalog:
    """
    In-memory list of TrackRecords persisted to a YAML file.

    Records handed out by ``get``/``list`` are copies; mutate the catalog
    through ``update`` and friends, then call ``save``.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._tracks: List[TrackRecord] = []

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> 'Catalog':
        """
        Load tracks from disk

        An absent or empty file yields an empty catalog.

        Returns:
            self, for chaining

        Raises:
            CatalogError: If the file exists but is not a valid catalog
        """
        with self._lock:
            self._tracks = self._read_file()
        logger.debug(f"Loaded {len(self._tracks)} tracks from {self.path}")
        return self

    def _read_file(self) -> List[TrackRecord]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CatalogError(
                f"Catalog file {self.path} is corrupted: {e}",
                details={'file_path': str(self.path)}
            ) from e
        except OSError as e:
            raise CatalogError(f"Cannot read catalog {self.path}: {e}") from e

        if document is None:
            return []
        if not isinstance(document, dict) or not isinstance(document.get('tracks') or [], list):
            raise CatalogError(
                f"Catalog file {self.path} has an unexpected structure",
                details={'file_path': str(self.path)}
            )

        tracks = []
        for entry in document.get('tracks') or []:
            if not isinstance(entry, dict):
                raise CatalogError(f"Catalog file {self.path} contains a malformed track entry")
            try:
                tracks.append(TrackRecord.from_dict(entry))
            except (TypeError, ValueError) as e:
                raise CatalogError(f"Catalog file {self.path} contains an invalid track: {e}") from e
        return tracks

    def save(self) -> None:
        """
        Persist all tracks to disk atomically

        Raises:
            CatalogError: If the file cannot be written
        """
        with self._lock:
            document = {'tracks': [track.to_dict() for track in self._tracks]}

            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(prefix='.snatcher_', dir=str(self.path.parent))
                try:
                    with os.fdopen(fd, 'w', encoding='utf-8') as f:
                        yaml.safe_dump(document, f, allow_unicode=True, sort_keys=False)
                    os.replace(tmp_name, self.path)
                except BaseException:
                    if os.path.exists(tmp_name):
                        os.unlink(tmp_name)
                    raise
            except OSError as e:
                raise CatalogError(f"Failed to save catalog to {self.path}: {e}") from e

        logger.debug(f"Saved {len(self._tracks)} tracks to {self.path}")

    # =========================================================================
    # Track Operations
    # =========================================================================

    def add(self, track: TrackRecord) -> TrackRecord:
        """
        Append a track, assigning the next free ID

        Args:
            track: Record to add; its ``id`` is ignored

        Returns:
            Copy of the stored record with its assigned ID
        """
        with self._lock:
            stored = track.copy()
            stored.id = max((t.id for t in self._tracks), default=0) + 1
            self._tracks.append(stored)
            logger.info(f"Added track {stored.id}: {stored.display_name}")
            return stored.copy()

    def find(self, track_id: int) -> Optional[TrackRecord]:
        """Return a copy of the track with this ID, or None"""
        with self._lock:
            for track in self._tracks:
                if track.id == track_id:
                    return track.copy()
        return None

    def get(self, track_id: int) -> TrackRecord:
        """
        Return a copy of the track with this ID

        Raises:
            NotFoundError: If no track has this ID
        """
        track = self.find(track_id)
        if track is None:
            raise NotFoundError(f"Track with ID {track_id} not found", track_id=track_id)
        return track

    def delete(self, track_id: int) -> TrackRecord:
        """
        Remove a track

        Returns:
            The removed record

        Raises:
            NotFoundError: If no track has this ID
        """
        with self._lock:
            for index, track in enumerate(self._tracks):
                if track.id == track_id:
                    del self._tracks[index]
                    logger.info(f"Removed track {track_id} from catalog")
                    return track
        raise NotFoundError(f"Track with ID {track_id} not found", track_id=track_id)

    def update(self, track: TrackRecord) -> None:
        """
        Replace the stored record that has ``track.id``

        Raises:
            NotFoundError: If no track has this ID
        """
        with self._lock:
            for index, existing in enumerate(self._tracks):
                if existing.id == track.id:
                    self._tracks[index] = track.copy()
                    return
        raise NotFoundError(f"Track with ID {track.id} not found", track_id=track.id)

    def edit(self, track_id: int, artist: Optional[str] = None, title: Optional[str] = None,
             album: Optional[str] = None) -> TrackRecord:
        """
        Change the descriptive tags of a track

        Arguments left as None keep their current value.

        Returns:
            Copy of the updated record

        Raises:
            NotFoundError: If no track has this ID
            ValidationError: If the resulting title is blank
        """
        track = self.get(track_id)
        if artist is not None:
            track.artist = artist.strip()
        if title is not None:
            track.title = title.strip()
        if album is not None:
            track.album = album.strip()
        if not track.title:
            raise ValidationError("Title cannot be empty")
        self.update(track)
        logger.info(f"Edited track {track.id}: {track.display_name}")
        return track

    def update_playback_position(self, track_id: int, position: int) -> None:
        """
        Store the last listening position of a track

        Raises:
            NotFoundError: If no track has this ID
        """
        with self._lock:
            for track in self._tracks:
                if track.id == track_id:
                    track.playback_position = max(0, int(position))
                    return
        raise NotFoundError(f"Track with ID {track_id} not found", track_id=track_id)

    def list(self) -> List[TrackRecord]:
        """Return copies of all tracks in catalog order"""
        with self._lock:
            return [track.copy() for track in self._tracks]

    def __len__(self) -> int:
        with self._lock:
            return len(self._tracks)


# Global catalog instance
_catalog: Optional[Catalog] = None


def get_catalog() -> Catalog:
    """
    Get the global catalog bound to the configured data file

    Returns:
        Loaded Catalog instance
    """
    global _catalog
    if _catalog is None:
        from ..config.settings import get_settings
        _catalog = Catalog(get_settings().get_data_file()).load()
    return _catalog


def reset_catalog() -> None:
    """Forget the global catalog so the next get_catalog() reloads it"""
    global _catalog
    _catalog = None
