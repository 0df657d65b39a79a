"""
S3-compatible object storage for uploaded tracks

Works with AWS S3 and with S3-compatible services (Cloudflare R2, MinIO,
Yandex Object Storage) through ``endpoint_url``. Track URLs are path-style:
``<endpoint>/<bucket>/<key>``, unless a ``public_url`` base is configured.
"""

import threading
from typing import BinaryIO, Callable, Optional
from urllib.parse import urlparse

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from ..config.settings import StorageConfig
from ..core.exceptions import CancelledError, StorageError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, Optional[int]], None]


def key_from_url(url: str, public_url: str = "") -> str:
    """
    Recover the object key from a track URL

    Args:
        url: Track URL as stored in the catalog
        public_url: Public base URL, if the track was stored under one

    Returns:
        Object key

    Raises:
        ValidationError: If the URL does not contain a key
    """
    if public_url and url.startswith(public_url.rstrip('/') + '/'):
        key = url[len(public_url.rstrip('/')) + 1:]
        if key:
            return key

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError(f"Invalid storage URL: {url}")

    # path-style: /<bucket>/<key>
    parts = parsed.path.lstrip('/').split('/', 1)
    if len(parts) < 2 or not parts[1]:
        raise ValidationError(f"Storage URL has no object key: {url}")
    return parts[1]


class S3Storage:
    """
    Upload and delete track files in one bucket

    Args:
        config: Storage section of the settings
        client: Pre-built boto3 S3 client (tests inject a stub)
    """

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self.bucket_name = config.bucket_name
        self.s3_client = client or boto3.client(
            's3',
            endpoint_url=config.endpoint or None,
            aws_access_key_id=config.access_key or None,
            aws_secret_access_key=config.secret_key or None,
            region_name=config.region or None,
        )

    def url_for(self, key: str) -> str:
        """Public URL a stored key is streamed from"""
        if self.config.public_url:
            return f"{self.config.public_url.rstrip('/')}/{key}"
        return f"{self.config.endpoint.rstrip('/')}/{self.bucket_name}/{key}"

    def key_from_url(self, url: str) -> str:
        return key_from_url(url, self.config.public_url)

    def put(
        self,
        stream: BinaryIO,
        key: str,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[ProgressCallback] = None,
        size: Optional[int] = None,
    ) -> str:
        """
        Upload a file object

        Args:
            stream: Readable binary file object
            key: Destination object key
            cancel_event: Set to abort the transfer
            progress_callback: Called with (bytes transferred so far, size)
            size: Total size for progress reporting

        Returns:
            URL of the stored object

        Raises:
            CancelledError: If cancel_event was set during the transfer
            StorageError: If the upload fails
        """
        transferred = 0

        def on_progress(chunk: int) -> None:
            nonlocal transferred
            if cancel_event is not None and cancel_event.is_set():
                raise CancelledError(f"Upload of {key} was cancelled")
            transferred += chunk
            if progress_callback:
                progress_callback(transferred, size)

        if cancel_event is not None and cancel_event.is_set():
            raise CancelledError(f"Upload of {key} was cancelled")

        logger.info(f"Uploading to s3://{self.bucket_name}/{key}")
        try:
            self.s3_client.upload_fileobj(
                stream, self.bucket_name, key,
                ExtraArgs={'ContentType': 'audio/mpeg'},
                Callback=on_progress,
            )
        except CancelledError:
            logger.warning(f"Upload of {key} cancelled")
            raise
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise StorageError(
                f"Upload of {key} failed: {e}",
                details={'bucket': self.bucket_name, 'key': key}
            ) from e

        url = self.url_for(key)
        logger.info(f"Uploaded {key} ({transferred} bytes)")
        return url

    def delete(self, key: str, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Delete an object

        Raises:
            CancelledError: If cancel_event is already set
            StorageError: If the request fails
        """
        if cancel_event is not None and cancel_event.is_set():
            raise CancelledError(f"Deletion of {key} was cancelled")
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                f"Delete of {key} failed: {e}",
                details={'bucket': self.bucket_name, 'key': key}
            ) from e
        logger.info(f"Deleted s3://{self.bucket_name}/{key}")
