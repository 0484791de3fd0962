from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .albums import create_albums_router
from .fs import AlbumStorageManager
from .retention import RetentionSweeper
from .settings.store import SettingsStore
from .upload import UploadPipeline


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def create_app(*, config_path: Optional[Path] = None) -> FastAPI:
    repo_root = _repo_root()
    if config_path is None:
        config_path = repo_root / "config" / "storage.json"

    store = SettingsStore(path=config_path)
    settings = store.load()

    data_root = Path(settings.data_root)
    if not data_root.is_absolute():
        data_root = repo_root / data_root

    storage = AlbumStorageManager(data_root=data_root, max_file_size=settings.max_file_size)
    pipeline = UploadPipeline(storage, max_workers=settings.max_workers)
    sweeper = RetentionSweeper(
        storage,
        retention=settings.retention,
        interval=settings.sweep_interval,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        storage.ensure_data_root()
        storage.refresh_counter()
        sweeper.start()
        try:
            yield
        finally:
            await sweeper.stop()

    app = FastAPI(title="album-store-local", lifespan=lifespan)
    app.include_router(create_albums_router(storage=storage, pipeline=pipeline, page_size=settings.page_size))

    app.state.settings_store = store
    app.state.settings = settings
    app.state.storage = storage
    app.state.pipeline = pipeline
    app.state.sweeper = sweeper
    app.state.repo_root = repo_root
    return app


app = create_app()
