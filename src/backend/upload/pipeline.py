"""
Batch ingestion of uploaded files into an album.

Two execution modes with different failure isolation:

- Sequential (batch <= sequential_limit files): files are saved in order and
  the batch stops at the first failure. Files after the failing one are never
  read.
- Concurrent (larger batches): min(max_workers, n) worker threads pull files
  from a shared queue. A failure is recorded and the worker moves on, so every
  file is attempted; all failures are reported together as an
  AggregateUploadError.

Neither mode rolls back: files saved before (or alongside) a failure remain on
disk. A started batch cannot be cancelled.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Sequence

from src.backend.fs.errors import AggregateUploadError, StorageError, UploadFailure
from src.backend.fs.models import ImageInfo
from src.backend.fs.storage import AlbumStorageManager

from .models import UploadItem, UploadOutcome


DEFAULT_MAX_WORKERS = 4
DEFAULT_SEQUENTIAL_LIMIT = 5

logger = logging.getLogger(__name__)


class UploadPipeline:
    def __init__(
        self,
        storage: AlbumStorageManager,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        sequential_limit: int = DEFAULT_SEQUENTIAL_LIMIT,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._storage = storage
        self._max_workers = max_workers
        self._sequential_limit = sequential_limit

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def upload(
        self,
        files: Sequence[UploadItem],
        owner_id: str,
        album_id: Optional[str] = None,
    ) -> UploadOutcome:
        """
        Store a batch of files into an album.

        Args:
            files: Files in client order.
            owner_id: Owner namespace.
            album_id: Target album; a new album is created when None.

        Raises:
            StorageIOError: Only if a new album could not be created. Per-file
                failures are reported through UploadOutcome.error.
        """
        if album_id is None:
            album_id = self._storage.create_album(owner_id).id

        if len(files) <= self._sequential_limit:
            outcome = self._upload_sequential(files, owner_id, album_id)
        else:
            outcome = self._upload_concurrent(files, owner_id, album_id)

        if outcome.error is None:
            logger.info("Uploaded %d file(s) to %s/%s", outcome.success_count, owner_id, album_id)
        else:
            logger.warning(
                "Upload to %s/%s: %d of %d file(s) saved; %s",
                owner_id,
                album_id,
                outcome.success_count,
                len(files),
                outcome.error,
            )
        return outcome

    def _save(self, item: UploadItem, owner_id: str, album_id: str) -> ImageInfo:
        return self._storage.save_image(
            item.stream, item.declared_name, item.size, owner_id, album_id
        )

    def _upload_sequential(
        self, files: Sequence[UploadItem], owner_id: str, album_id: str
    ) -> UploadOutcome:
        saved: list[ImageInfo] = []
        for item in files:
            try:
                saved.append(self._save(item, owner_id, album_id))
            except StorageError as exc:
                return UploadOutcome(album_id, len(saved), saved, exc)
        return UploadOutcome(album_id, len(saved), saved, None)

    def _upload_concurrent(
        self, files: Sequence[UploadItem], owner_id: str, album_id: str
    ) -> UploadOutcome:
        jobs: queue.Queue[tuple[int, UploadItem]] = queue.Queue()
        for index, item in enumerate(files):
            jobs.put((index, item))

        failures: list[UploadFailure] = []
        failures_lock = threading.Lock()
        worker_count = min(self._max_workers, len(files))
        # Each worker only appends to its own list
        saved_by_worker: list[list[tuple[int, ImageInfo]]] = [[] for _ in range(worker_count)]

        def worker(worker_id: int) -> None:
            while True:
                try:
                    index, item = jobs.get_nowait()
                except queue.Empty:
                    return
                try:
                    info = self._save(item, owner_id, album_id)
                except Exception as exc:  # noqa: BLE001 - recorded, surfaced via aggregate
                    with failures_lock:
                        failures.append(
                            UploadFailure(
                                index=index,
                                filename=item.declared_name,
                                error=exc,
                                worker_id=worker_id,
                            )
                        )
                else:
                    saved_by_worker[worker_id].append((index, info))

        threads = [
            threading.Thread(
                target=worker,
                args=(worker_id,),
                name=f"upload-{owner_id}-{album_id}-{worker_id}",
                daemon=True,
            )
            for worker_id in range(worker_count)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        indexed = [pair for per_worker in saved_by_worker for pair in per_worker]
        indexed.sort(key=lambda pair: pair[0])
        saved = [info for _, info in indexed]
        error = AggregateUploadError(failures) if failures else None
        return UploadOutcome(album_id, len(saved), saved, error)
