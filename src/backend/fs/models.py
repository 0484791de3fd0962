from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def from_timestamp(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def format_utc_z(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ImageInfo:
    filename: str
    path: Path
    size: int
    owner_id: str
    album_id: str
    modified_at: datetime

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "size": self.size,
            "album_id": self.album_id,
            "modified_at": format_utc_z(self.modified_at),
            "url": f"/image/{self.album_id}/{self.filename}",
        }


@dataclass(frozen=True)
class AlbumInfo:
    id: str
    owner_id: str
    created_at: datetime  # album directory mtime
    image_count: int

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": format_utc_z(self.created_at),
            "image_count": self.image_count,
        }
