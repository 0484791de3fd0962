from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any


DEFAULT_DATA_ROOT = "data"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
DEFAULT_RETENTION_DAYS = 60
DEFAULT_SWEEP_INTERVAL_S = 24 * 60 * 60
DEFAULT_MAX_WORKERS = 4
DEFAULT_PAGE_SIZE = 12


def _int_or_default(value: Any, default: int, *, minimum: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= minimum else default


@dataclass
class StorageSettings:
    data_root: str = DEFAULT_DATA_ROOT
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    retention_days: int = DEFAULT_RETENTION_DAYS
    sweep_interval_s: int = DEFAULT_SWEEP_INTERVAL_S
    max_workers: int = DEFAULT_MAX_WORKERS
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def retention(self) -> timedelta:
        return timedelta(days=self.retention_days)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(seconds=self.sweep_interval_s)

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "version": 1,
            "data_root": self.data_root,
            "max_file_size": self.max_file_size,
            "retention_days": self.retention_days,
            "sweep_interval_s": self.sweep_interval_s,
            "max_workers": self.max_workers,
            "page_size": self.page_size,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "StorageSettings":
        data_root = str(data.get("data_root", DEFAULT_DATA_ROOT) or DEFAULT_DATA_ROOT)
        return cls(
            data_root=data_root,
            max_file_size=_int_or_default(data.get("max_file_size"), DEFAULT_MAX_FILE_SIZE, minimum=1),
            retention_days=_int_or_default(data.get("retention_days"), DEFAULT_RETENTION_DAYS, minimum=1),
            sweep_interval_s=_int_or_default(data.get("sweep_interval_s"), DEFAULT_SWEEP_INTERVAL_S, minimum=1),
            max_workers=_int_or_default(data.get("max_workers"), DEFAULT_MAX_WORKERS, minimum=1),
            page_size=_int_or_default(data.get("page_size"), DEFAULT_PAGE_SIZE, minimum=1),
        )
