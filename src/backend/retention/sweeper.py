"""
Background retention sweep.

Once per interval the sweeper:
1. deletes every file older than the retention window, both loose files in an
   owner directory and files inside that owner's albums;
2. removes album directories left empty (emptied by step 1, or empty and
   themselves older than the window), then owner directories left empty.

Every per-entry failure is logged and counted; a sweep never raises and never
stops early because of one bad entry.

Lifecycle: Idle -> Running (start) -> Stopped (stop). Stopped is terminal.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Callable, Optional

from src.backend.fs.naming import is_image_file
from src.backend.fs.storage import AlbumStorageManager

from .models import SweepReport, SweeperState


DEFAULT_RETENTION = timedelta(days=60)
DEFAULT_INTERVAL = timedelta(hours=24)

logger = logging.getLogger(__name__)


class RetentionSweeper:
    def __init__(
        self,
        storage: AlbumStorageManager,
        *,
        retention: timedelta = DEFAULT_RETENTION,
        interval: timedelta = DEFAULT_INTERVAL,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if interval.total_seconds() <= 0:
            raise ValueError("interval must be positive")
        self._storage = storage
        self._retention = retention
        self._interval = interval
        self._clock = clock or time.time

        self._state = SweeperState.IDLE
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> SweeperState:
        return self._state

    @property
    def retention(self) -> timedelta:
        return self._retention

    # ---------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Start the loop on the running event loop. Only allowed once."""
        if self._state != SweeperState.IDLE:
            raise RuntimeError(f"sweeper cannot start from state {self._state.value}")

        self._stop_event = asyncio.Event()
        self._state = SweeperState.RUNNING
        self._task = asyncio.create_task(self._run(), name="retention-sweeper")
        logger.info(
            "Retention sweeper started (retention=%s, interval=%s)",
            self._retention,
            self._interval,
        )
        return self._task

    async def stop(self) -> None:
        """Signal cancellation and wait for the loop to exit."""
        if self._state == SweeperState.STOPPED:
            return
        if self._state == SweeperState.IDLE:
            self._state = SweeperState.STOPPED
            return

        assert self._stop_event is not None and self._task is not None
        self._stop_event.set()
        await self._task

    async def _run(self) -> None:
        assert self._stop_event is not None
        interval_s = self._interval.total_seconds()
        try:
            while not self._stop_event.is_set():
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=interval_s)
                except asyncio.TimeoutError:
                    pass
                if self._stop_event.is_set():
                    break

                try:
                    await asyncio.to_thread(self.sweep_once)
                except Exception:  # noqa: BLE001 - keep the loop alive
                    logger.exception("Retention sweep failed")
        finally:
            self._state = SweeperState.STOPPED
            logger.info("Retention sweeper stopped")

    # ---------------------------------------------------------------------
    # One sweep
    # ---------------------------------------------------------------------

    def sweep_once(self, now: Optional[float] = None) -> SweepReport:
        """
        Run one full sweep synchronously.

        Args:
            now: Reference time as a POSIX timestamp (defaults to the clock).
        """
        now_ts = self._clock() if now is None else now
        cutoff = now_ts - self._retention.total_seconds()
        report = SweepReport()

        user_dirs = [p for p in self._list_dir(self._storage.data_root, report) if p.is_dir()]

        emptied: set[Path] = set()
        for user_dir in user_dirs:
            self._purge_stale_files(user_dir, cutoff, emptied, report)

        for user_dir in user_dirs:
            self._prune_empty_dirs(user_dir, cutoff, emptied, report)

        logger.info(
            "Retention sweep: %d file(s) deleted, %d dir(s) removed, %d error(s)",
            report.files_deleted,
            report.dirs_removed,
            report.errors,
        )
        return report

    def _purge_stale_files(
        self, user_dir: Path, cutoff: float, touched: set[Path], report: SweepReport
    ) -> None:
        owner_id = user_dir.name
        for entry in self._list_dir(user_dir, report):
            if entry.is_dir():
                with self._storage.locks.hold(owner_id, entry.name):
                    for child in self._list_dir(entry, report):
                        if child.is_dir():
                            continue
                        if self._delete_if_stale(child, cutoff, report):
                            touched.add(entry)
            else:
                self._delete_if_stale(entry, cutoff, report)

    def _delete_if_stale(self, path: Path, cutoff: float, report: SweepReport) -> bool:
        try:
            if path.lstat().st_mtime >= cutoff:
                return False
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Failed to remove old file %s: %s", path, exc)
            report.errors += 1
            return False

        report.files_deleted += 1
        if is_image_file(path.name):
            self._storage.counter.decrement()
        return True

    def _prune_empty_dirs(
        self, user_dir: Path, cutoff: float, touched: set[Path], report: SweepReport
    ) -> None:
        owner_id = user_dir.name
        for entry in self._list_dir(user_dir, report):
            if not entry.is_dir():
                continue
            with self._storage.locks.hold(owner_id, entry.name):
                if entry in touched or self._is_stale(entry, cutoff):
                    self._remove_if_empty(entry, report)

        self._remove_if_empty(user_dir, report)

    def _is_stale(self, path: Path, cutoff: float) -> bool:
        try:
            return path.stat().st_mtime < cutoff
        except OSError:
            return False

    def _remove_if_empty(self, directory: Path, report: SweepReport) -> None:
        try:
            if any(directory.iterdir()):
                return
            directory.rmdir()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("Failed to remove empty directory %s: %s", directory, exc)
            report.errors += 1
            return

        report.dirs_removed += 1
        logger.debug("Removed empty directory %s", directory)

    def _list_dir(self, directory: Path, report: SweepReport) -> list[Path]:
        try:
            return list(directory.iterdir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.warning("Failed to read directory %s: %s", directory, exc)
            report.errors += 1
            return []
