"""
Uploader package: publish local MP3 files and catalog them.
"""

from .service import UploadService, UploadResult

__all__ = ['UploadService', 'UploadResult']
