from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, NamedTuple, Optional

from src.backend.fs.errors import StorageError
from src.backend.fs.models import ImageInfo


@dataclass
class UploadItem:
    """One file of an upload batch, as received from the HTTP layer."""
    stream: BinaryIO
    declared_name: str
    size: int


class UploadOutcome(NamedTuple):
    """
    Result of an upload batch.

    error is the first failure in sequential mode, or an AggregateUploadError
    listing every failure in concurrent mode. Files in `saved` stay on disk
    either way.
    """
    album_id: str
    success_count: int
    saved: list[ImageInfo]
    error: Optional[StorageError]

    @property
    def ok(self) -> bool:
        return self.error is None
