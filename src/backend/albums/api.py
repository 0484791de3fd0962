"""
API routes for albums and images.

The owner of every request is the opaque `session_id` cookie. Only uploads
mint a new one; every other route treats a missing cookie as an owner with
nothing stored. Cookie, album and filename values become path segments under
the data root, so anything not shaped like an allocated id or a stored
filename is rejected before storage is touched.
"""

from __future__ import annotations

from typing import Any, NoReturn, Optional

from fastapi import APIRouter, Cookie, File, Form, HTTPException, Query, Response, UploadFile
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel

from src.backend.fs import (
    AggregateUploadError,
    AlbumStorageManager,
    InvalidTypeError,
    NotFoundError,
    StorageError,
    TooLargeError,
    parse_image_filename,
)
from src.backend.upload import UploadItem, UploadPipeline
from src.shared.ids import is_valid_id, new_unique_id
from src.shared.pagination import clamp_page, page_count, paginate


SESSION_COOKIE_NAME = "session_id"
SESSION_MAX_AGE_S = 30 * 24 * 60 * 60  # 30 days
DEFAULT_PAGE_SIZE = 12


class AlbumOut(BaseModel):
    id: str
    created_at: str
    image_count: int


class ImageOut(BaseModel):
    filename: str
    size: int
    album_id: str
    modified_at: str
    url: str


class ImagePageOut(BaseModel):
    album_id: str
    page: int
    page_size: int
    total_pages: int
    total_images: int
    images: list[ImageOut]


class DeletedOut(BaseModel):
    deleted: int


def status_for_error(exc: StorageError) -> int:
    if isinstance(exc, TooLargeError):
        return 413
    if isinstance(exc, InvalidTypeError):
        return 415
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, AggregateUploadError):
        return 207
    return 500


def _raise_http(exc: StorageError) -> NoReturn:
    raise HTTPException(status_code=status_for_error(exc), detail=str(exc)) from exc


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    stream = upload.file
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(0)
    return size


def _session_owner(session_id: Optional[str]) -> Optional[str]:
    """Owner id carried by the cookie, None when there is none."""
    if not session_id:
        return None
    if not is_valid_id(session_id):
        raise HTTPException(status_code=400, detail="invalid session")
    return session_id


def _require_owner(session_id: Optional[str], missing_detail: str) -> str:
    owner_id = _session_owner(session_id)
    if owner_id is None:
        raise HTTPException(status_code=404, detail=missing_detail)
    return owner_id


def _require_album_id(album_id: str) -> None:
    if not is_valid_id(album_id):
        raise HTTPException(status_code=404, detail="album not found")


def _require_filename(filename: str) -> None:
    if parse_image_filename(filename) is None:
        raise HTTPException(status_code=404, detail="image not found")


def create_albums_router(
    *,
    storage: AlbumStorageManager,
    pipeline: UploadPipeline,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> APIRouter:
    """
    Create the albums API router.

    Args:
        storage: The album storage manager.
        pipeline: Upload pipeline writing into `storage`.
        page_size: Images per page for album listings.

    Returns:
        FastAPI router with album and image endpoints.
    """
    router = APIRouter(tags=["albums"])

    @router.get("/api/albums", response_model=list[AlbumOut])
    def list_albums(session_id: Optional[str] = Cookie(default=None)) -> list[AlbumOut]:
        owner_id = _session_owner(session_id)
        if owner_id is None:
            return []
        return [AlbumOut(**album.to_public_dict()) for album in storage.list_albums(owner_id)]

    @router.post("/api/albums", response_model=AlbumOut)
    def create_album(response: Response, session_id: Optional[str] = Cookie(default=None)) -> AlbumOut:
        owner_id = _session_owner(session_id) or _mint_session(response)
        try:
            album = storage.create_album(owner_id)
        except StorageError as exc:
            _raise_http(exc)
        return AlbumOut(**album.to_public_dict())

    @router.get("/api/albums/{album_id}/images", response_model=ImagePageOut)
    def list_images(
        album_id: str,
        page: int = Query(default=0, ge=0),
        session_id: Optional[str] = Cookie(default=None),
    ) -> ImagePageOut:
        owner_id = _session_owner(session_id)
        _require_album_id(album_id)
        images = storage.list_images(owner_id, album_id) if owner_id else []
        current = clamp_page(page, len(images), page_size)
        return ImagePageOut(
            album_id=album_id,
            page=current,
            page_size=page_size,
            total_pages=page_count(len(images), page_size),
            total_images=len(images),
            images=[ImageOut(**img.to_public_dict()) for img in paginate(images, current, page_size)],
        )

    @router.post("/api/upload")
    def upload(
        response: Response,
        images: list[UploadFile] = File(...),
        album_id: Optional[str] = Form(default=None),
        session_id: Optional[str] = Cookie(default=None),
    ) -> Any:
        if album_id and not is_valid_id(album_id):
            raise HTTPException(status_code=400, detail="invalid album id")
        owner_id = _session_owner(session_id) or _mint_session(response)
        items = [
            UploadItem(stream=f.file, declared_name=f.filename or "", size=_upload_size(f))
            for f in images
        ]
        try:
            outcome = pipeline.upload(items, owner_id, album_id or None)
        except StorageError as exc:
            _raise_http(exc)

        body: dict[str, Any] = {
            "album_id": outcome.album_id,
            "uploaded": outcome.success_count,
            "images": [img.to_public_dict() for img in outcome.saved],
        }
        if outcome.error is None:
            return body

        if isinstance(outcome.error, AggregateUploadError):
            body["errors"] = [
                {"index": f.index, "filename": f.filename, "error": str(f.error)}
                for f in outcome.error.failures
            ]
        else:
            body["error"] = str(outcome.error)

        # A fresh JSONResponse does not carry headers set on the injected one
        result = JSONResponse(status_code=status_for_error(outcome.error), content=body)
        if not session_id:
            _set_session_cookie(result, owner_id)
        return result

    @router.get("/image/{album_id}/{filename}")
    def get_image(
        album_id: str,
        filename: str,
        session_id: Optional[str] = Cookie(default=None),
    ) -> FileResponse:
        owner_id = _require_owner(session_id, "image not found")
        _require_album_id(album_id)
        _require_filename(filename)
        try:
            path = storage.open_image(owner_id, album_id, filename)
        except StorageError as exc:
            _raise_http(exc)
        return FileResponse(path)

    @router.delete("/api/albums/{album_id}/images/{filename}", response_model=DeletedOut)
    def delete_image(
        album_id: str,
        filename: str,
        session_id: Optional[str] = Cookie(default=None),
    ) -> DeletedOut:
        owner_id = _require_owner(session_id, "image not found")
        _require_album_id(album_id)
        _require_filename(filename)
        try:
            storage.delete_image(owner_id, album_id, filename)
        except StorageError as exc:
            _raise_http(exc)
        return DeletedOut(deleted=1)

    @router.delete("/api/albums/{album_id}", response_model=DeletedOut)
    def delete_album(album_id: str, session_id: Optional[str] = Cookie(default=None)) -> DeletedOut:
        owner_id = _require_owner(session_id, "album not found")
        _require_album_id(album_id)
        try:
            removed = storage.delete_album(owner_id, album_id)
        except StorageError as exc:
            _raise_http(exc)
        return DeletedOut(deleted=removed)

    @router.delete("/api/me", response_model=DeletedOut)
    def delete_me(session_id: Optional[str] = Cookie(default=None)) -> DeletedOut:
        owner_id = _require_owner(session_id, "user not found")
        try:
            removed = storage.delete_user(owner_id)
        except StorageError as exc:
            _raise_http(exc)
        return DeletedOut(deleted=removed)

    def _mint_session(response: Response) -> str:
        owner_id = new_unique_id(storage.user_exists)
        _set_session_cookie(response, owner_id)
        return owner_id

    return router


def _set_session_cookie(response: Response, owner_id: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=owner_id,
        max_age=SESSION_MAX_AGE_S,
        path="/",
        httponly=True,
        samesite="lax",
    )
