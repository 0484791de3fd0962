"""
File system storage for albums and images.

Provides:
- Directory structure management (storage.py)
- Stored filename conventions (naming.py)
- Content sniffing for uploads (sniff.py)
- Album lock registry (locks.py)
- Error taxonomy (errors.py)
"""

from .storage import AlbumStorageManager, DEFAULT_MAX_FILE_SIZE
from .models import AlbumInfo, ImageInfo
from .naming import IMAGE_EXTENSIONS, generate_image_filename, parse_image_filename
from .sniff import classify, sniff_mime
from .locks import KeyedLocks
from .errors import (
    AggregateUploadError,
    InvalidTypeError,
    NotFoundError,
    StorageError,
    StorageIOError,
    TooLargeError,
    UploadFailure,
    ValidationError,
)

__all__ = [
    "AlbumStorageManager",
    "DEFAULT_MAX_FILE_SIZE",
    "AlbumInfo",
    "ImageInfo",
    "IMAGE_EXTENSIONS",
    "generate_image_filename",
    "parse_image_filename",
    "classify",
    "sniff_mime",
    "KeyedLocks",
    "AggregateUploadError",
    "InvalidTypeError",
    "NotFoundError",
    "StorageError",
    "StorageIOError",
    "TooLargeError",
    "UploadFailure",
    "ValidationError",
]
