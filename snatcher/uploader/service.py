"""
Upload service: local MP3 -> object storage -> catalog
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from ..audio.metadata import FileInfo, MetadataExtractor, TrackTags
from ..catalog.catalog import Catalog
from ..catalog.models import TrackRecord
from ..core.exceptions import ValidationError
from ..storage.s3 import S3Storage
from ..utils.logger import get_logger
from ..utils.validation import validate_audio_file

logger = get_logger(__name__)


@dataclass
class UploadResult:
    """Outcome of a successful upload"""
    url: str
    key: str
    tags: TrackTags = field(default_factory=TrackTags)
    info: FileInfo = field(default_factory=FileInfo)


class UploadService:
    """
    Upload local MP3 files and register them in the catalog

    Args:
        storage: Destination bucket
        catalog: Catalog new tracks are added to
        extractor: Tag reader, a fresh MetadataExtractor by default
        key_prefix: Prepended to every object key
    """

    def __init__(self, storage: S3Storage, catalog: Catalog,
                 extractor: Optional[MetadataExtractor] = None, key_prefix: str = ""):
        self.storage = storage
        self.catalog = catalog
        self.extractor = extractor or MetadataExtractor()
        self.key_prefix = key_prefix

    def object_key(self, file_path: Union[str, Path]) -> str:
        """Object key for a local file: ``<prefix><stem>.mp3``"""
        return f"{self.key_prefix}{Path(file_path).stem}.mp3"

    def upload_file(
        self,
        file_path: Union[str, Path],
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, Optional[int]], None]] = None,
    ) -> UploadResult:
        """
        Read tags from a local MP3 and upload it

        Args:
            file_path: Local MP3 file
            cancel_event: Set to abort the upload
            progress_callback: Called with (bytes sent, total bytes)

        Returns:
            UploadResult with the public URL, tags and file info

        Raises:
            ValidationError: If the path is not an existing MP3 file
            NotFoundError: If the file disappears before reading
            DecodeError: If the file is not readable MP3
            StorageError: If the upload fails
            CancelledError: If cancel_event is set during the upload
        """
        is_valid, error = validate_audio_file(str(file_path))
        if not is_valid:
            raise ValidationError(error, details={'file_path': str(file_path)})

        path = Path(file_path).expanduser()
        info = self.extractor.file_info(path)
        tags = self.extractor.extract(path)
        key = self.object_key(path)

        logger.info(f"Uploading {path.name} as {key} ({info.size} bytes)")
        with open(path, 'rb') as f:
            url = self.storage.put(
                f, key,
                cancel_event=cancel_event,
                progress_callback=progress_callback,
                size=info.size,
            )

        return UploadResult(url=url, key=key, tags=tags, info=info)

    def add_to_catalog(self, result: UploadResult, source_url: str = "") -> TrackRecord:
        """
        Add an uploaded track to the catalog and save it

        Args:
            result: Upload to register
            source_url: Page the audio came from, if it was downloaded

        Returns:
            The stored record with its assigned ID

        Raises:
            CatalogError: If the catalog cannot be saved
        """
        track = self.catalog.add(TrackRecord(
            artist=result.tags.artist,
            title=result.tags.title,
            album=result.tags.album,
            length=int(result.info.duration),
            file_size=result.info.size,
            url=result.url,
            source_url=source_url,
        ))
        self.catalog.save()
        return track
