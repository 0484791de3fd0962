"""
Error taxonomy for album storage.

    StorageError
    ├── ValidationError
    │   ├── TooLargeError
    │   └── InvalidTypeError
    ├── NotFoundError
    ├── StorageIOError
    └── AggregateUploadError

Validation and not-found errors are returned to the immediate caller and never
retried. StorageIOError wraps the underlying OSError (available as __cause__).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class StorageError(Exception):
    pass


class ValidationError(StorageError):
    pass


class TooLargeError(ValidationError):
    def __init__(self, size: int, max_size: int) -> None:
        super().__init__(f"file too large: {size} bytes (max {max_size})")
        self.size = size
        self.max_size = max_size


class InvalidTypeError(ValidationError):
    def __init__(self, declared_name: str = "") -> None:
        detail = f": {declared_name}" if declared_name else ""
        super().__init__(f"invalid image type{detail}")
        self.declared_name = declared_name


class NotFoundError(StorageError):
    pass


class StorageIOError(StorageError):
    pass


@dataclass(frozen=True)
class UploadFailure:
    """One failed file from an upload batch."""
    index: int
    filename: str
    error: Exception
    worker_id: Optional[int] = None

    def describe(self) -> str:
        worker = f" (worker {self.worker_id})" if self.worker_id is not None else ""
        return f"#{self.index} {self.filename}{worker}: {self.error}"


class AggregateUploadError(StorageError):
    """All per-file failures of one concurrent upload batch, ordered by file index."""

    def __init__(self, failures: list[UploadFailure]) -> None:
        self.failures = sorted(failures, key=lambda f: f.index)
        lines = "; ".join(f.describe() for f in self.failures)
        super().__init__(f"{len(self.failures)} file(s) failed to upload: {lines}")

    @property
    def filenames(self) -> list[str]:
        return [f.filename for f in self.failures]
