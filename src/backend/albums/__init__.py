"""
HTTP boundary for album storage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import APIRouter  # pragma: no cover

    from src.backend.fs import AlbumStorageManager
    from src.backend.upload import UploadPipeline


def create_albums_router(
    *,
    storage: "AlbumStorageManager",
    pipeline: "UploadPipeline",
    page_size: int = 12,
) -> "APIRouter":
    """
    Lazily import FastAPI router to keep non-web imports lightweight.
    """
    from .api import create_albums_router as _create_albums_router

    return _create_albums_router(storage=storage, pipeline=pipeline, page_size=page_size)


__all__ = [
    "create_albums_router",
]
