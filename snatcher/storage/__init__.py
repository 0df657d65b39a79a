"""
Storage package: S3-compatible object storage.
"""

from .s3 import S3Storage, key_from_url

__all__ = ['S3Storage', 'key_from_url']
