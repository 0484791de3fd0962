"""
Album storage directory structure management.

Directory structure:
    <data_root>/<owner_id>/<album_id>/<id>.<ext>

There is no index: an album exists iff its directory exists, its creation time
is the directory mtime, and image counts come from scanning. Every listing is
recomputed from disk.

owner_id and album_id are used as path segments verbatim; callers must supply
values that are safe as directory names.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Optional

from src.shared.ids import MAX_ID_ATTEMPTS, new_id
from src.shared.stats import AdvisoryCounter

from .errors import InvalidTypeError, NotFoundError, StorageIOError, TooLargeError
from .locks import KeyedLocks
from .models import AlbumInfo, ImageInfo, from_timestamp
from .naming import generate_image_filename, is_image_file
from .sniff import classify


DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

logger = logging.getLogger(__name__)


class AlbumStorageManager:
    """
    Owns everything under one data root: users, albums and images.

    Mutations of an album are serialised through a keyed lock registry; reads
    take no locks and may observe a directory mid-change.
    """

    def __init__(
        self,
        data_root: Path,
        *,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        counter: Optional[AdvisoryCounter] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        """
        Initialize the storage manager.

        Args:
            data_root: The root directory for all stored albums.
            max_file_size: Largest accepted upload, in bytes.
            counter: Advisory image counter shared with other components.
            locks: Album lock registry shared with other components.
        """
        self._data_root = Path(data_root).resolve()
        self._max_file_size = max_file_size
        self._counter = counter if counter is not None else AdvisoryCounter()
        self._locks = locks if locks is not None else KeyedLocks()

    @property
    def data_root(self) -> Path:
        return self._data_root

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    @property
    def counter(self) -> AdvisoryCounter:
        """Advisory total of stored images; see AdvisoryCounter."""
        return self._counter

    @property
    def locks(self) -> KeyedLocks:
        return self._locks

    # ---------------------------------------------------------------------
    # Paths
    # ---------------------------------------------------------------------

    def user_path(self, owner_id: str) -> Path:
        return self._data_root / owner_id

    def album_path(self, owner_id: str, album_id: str) -> Path:
        return self._data_root / owner_id / album_id

    def image_path(self, owner_id: str, album_id: str, filename: str) -> Path:
        return self._data_root / owner_id / album_id / filename

    def ensure_dir(self, path: Path) -> Path:
        """
        Create a directory (and parents) if missing.

        Raises:
            StorageIOError: If the directory cannot be created.
        """
        path = Path(path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create directory %s: %s", path, exc)
            raise StorageIOError(f"cannot create directory {path}: {exc}") from exc
        return path

    def ensure_data_root(self) -> Path:
        return self.ensure_dir(self._data_root)

    # ---------------------------------------------------------------------
    # Albums
    # ---------------------------------------------------------------------

    def create_album(self, owner_id: str) -> AlbumInfo:
        """
        Create a new, empty album with an id not yet used by this owner.

        Raises:
            StorageIOError: If the directory cannot be created or no free id
                was found.
        """
        for _ in range(MAX_ID_ATTEMPTS):
            album_id = new_id()
            album_dir = self.album_path(owner_id, album_id)
            with self._locks.hold(owner_id, album_id):
                try:
                    album_dir.mkdir(parents=True)
                except FileExistsError:
                    logger.debug("Album id collision for %s/%s, regenerating", owner_id, album_id)
                    continue
                except OSError as exc:
                    raise StorageIOError(f"cannot create album {album_dir}: {exc}") from exc

            logger.info("Created album %s/%s", owner_id, album_id)
            return self.get_album(owner_id, album_id)

        raise StorageIOError(f"no free album id for owner {owner_id}")

    def get_album(self, owner_id: str, album_id: str) -> AlbumInfo:
        album_dir = self.album_path(owner_id, album_id)
        try:
            stat = album_dir.stat()
        except FileNotFoundError:
            raise NotFoundError(f"album not found: {owner_id}/{album_id}") from None
        except OSError as exc:
            raise StorageIOError(f"cannot stat album {album_dir}: {exc}") from exc
        if not album_dir.is_dir():
            raise NotFoundError(f"album not found: {owner_id}/{album_id}")

        return AlbumInfo(
            id=album_id,
            owner_id=owner_id,
            created_at=from_timestamp(stat.st_mtime),
            image_count=len(self._scan_images(album_dir)),
        )

    def list_albums(self, owner_id: str) -> list[AlbumInfo]:
        """
        List an owner's albums, newest first (ties: album id descending).

        Returns an empty list if the owner has no directory.
        """
        user_dir = self.user_path(owner_id)
        if not user_dir.is_dir():
            return []

        albums: list[AlbumInfo] = []
        for child in self._iterdir(user_dir):
            if not child.is_dir():
                continue
            try:
                stat = child.stat()
            except OSError:
                # Removed between listing and stat
                continue
            albums.append(
                AlbumInfo(
                    id=child.name,
                    owner_id=owner_id,
                    created_at=from_timestamp(stat.st_mtime),
                    image_count=len(self._scan_images(child)),
                )
            )

        albums.sort(key=lambda a: (a.created_at, a.id), reverse=True)
        return albums

    def delete_album(self, owner_id: str, album_id: str) -> int:
        """
        Recursively delete an album.

        Returns:
            Number of images that were in the album.

        Raises:
            NotFoundError: If the album directory does not exist.
            StorageIOError: If removal fails.
        """
        album_dir = self.album_path(owner_id, album_id)
        with self._locks.hold(owner_id, album_id):
            if not album_dir.is_dir():
                raise NotFoundError(f"album not found: {owner_id}/{album_id}")

            removed = len(self._scan_images(album_dir))
            try:
                shutil.rmtree(album_dir)
            except OSError as exc:
                raise StorageIOError(f"cannot delete album {album_dir}: {exc}") from exc

        self._counter.decrement(removed)
        logger.info("Deleted album %s/%s (%d images)", owner_id, album_id, removed)
        return removed

    # ---------------------------------------------------------------------
    # Images
    # ---------------------------------------------------------------------

    def save_image(
        self,
        stream: BinaryIO,
        declared_name: str,
        size: int,
        owner_id: str,
        album_id: str,
    ) -> ImageInfo:
        """
        Validate and store one uploaded image.

        The declared name is only used in error messages; the stored
        extension comes from content sniffing.

        Raises:
            TooLargeError: If `size` exceeds the configured maximum. The
                stream is not read.
            InvalidTypeError: If the content is not an accepted image type.
            StorageIOError: If the album directory or the file cannot be
                written.
        """
        if size > self._max_file_size:
            raise TooLargeError(size, self._max_file_size)

        extension, accepted = classify(stream)
        if not accepted:
            raise InvalidTypeError(declared_name)

        with self._locks.hold(owner_id, album_id):
            album_dir = self.ensure_dir(self.album_path(owner_id, album_id))
            path, dst = self._create_exclusive(album_dir, extension)
            try:
                with dst:
                    shutil.copyfileobj(stream, dst)
                stat = path.stat()
            except (OSError, ValueError) as exc:
                self._discard_partial(path)
                raise StorageIOError(f"cannot write {path}: {exc}") from exc

        self._counter.increment()
        logger.debug("Saved %s as %s (%d bytes)", declared_name, path, stat.st_size)
        return ImageInfo(
            filename=path.name,
            path=path,
            size=stat.st_size,
            owner_id=owner_id,
            album_id=album_id,
            modified_at=from_timestamp(stat.st_mtime),
        )

    def list_images(self, owner_id: str, album_id: str) -> list[ImageInfo]:
        """
        List an album's images in upload order (oldest mtime first).

        Returns an empty list if the album does not exist.
        """
        album_dir = self.album_path(owner_id, album_id)
        if not album_dir.is_dir():
            return []

        found = self._scan_images(album_dir)
        found.sort(key=lambda item: (item[1].st_mtime_ns, item[0].name))
        return [
            ImageInfo(
                filename=path.name,
                path=path,
                size=stat.st_size,
                owner_id=owner_id,
                album_id=album_id,
                modified_at=from_timestamp(stat.st_mtime),
            )
            for path, stat in found
        ]

    def open_image(self, owner_id: str, album_id: str, filename: str) -> Path:
        """Resolve a stored image for reading."""
        path = self.image_path(owner_id, album_id, filename)
        if not is_image_file(filename) or not path.is_file():
            raise NotFoundError(f"image not found: {owner_id}/{album_id}/{filename}")
        return path

    def delete_image(self, owner_id: str, album_id: str, filename: str) -> None:
        """
        Raises:
            NotFoundError: If the file does not exist.
            StorageIOError: If removal fails.
        """
        path = self.image_path(owner_id, album_id, filename)
        with self._locks.hold(owner_id, album_id):
            if not path.is_file():
                raise NotFoundError(f"image not found: {owner_id}/{album_id}/{filename}")
            try:
                path.unlink()
            except FileNotFoundError:
                raise NotFoundError(f"image not found: {owner_id}/{album_id}/{filename}") from None
            except OSError as exc:
                raise StorageIOError(f"cannot delete {path}: {exc}") from exc

        self._counter.decrement()
        logger.info("Deleted image %s/%s/%s", owner_id, album_id, filename)

    # ---------------------------------------------------------------------
    # Users
    # ---------------------------------------------------------------------

    def user_exists(self, owner_id: str) -> bool:
        return self.user_path(owner_id).is_dir()

    def delete_user(self, owner_id: str) -> int:
        """
        Recursively delete everything an owner has stored.

        Holds every existing album lock of the owner. An album created by a
        concurrent upload after the locks were taken is not covered.

        Returns:
            Number of images removed.

        Raises:
            NotFoundError: If the owner directory does not exist.
            StorageIOError: If removal fails.
        """
        user_dir = self.user_path(owner_id)
        if not user_dir.is_dir():
            raise NotFoundError(f"user not found: {owner_id}")

        album_ids = [child.name for child in self._iterdir(user_dir) if child.is_dir()]
        with self._locks.hold_many(owner_id, album_ids):
            removed = self._count_tree(user_dir)
            try:
                shutil.rmtree(user_dir)
            except FileNotFoundError:
                raise NotFoundError(f"user not found: {owner_id}") from None
            except OSError as exc:
                raise StorageIOError(f"cannot delete user {user_dir}: {exc}") from exc

        self._counter.decrement(removed)
        logger.info("Deleted user %s (%d images)", owner_id, removed)
        return removed

    # ---------------------------------------------------------------------
    # Counting
    # ---------------------------------------------------------------------

    def count_images(self, owner_id: Optional[str] = None) -> int:
        """Authoritative image count from a directory scan."""
        root = self.user_path(owner_id) if owner_id is not None else self._data_root
        if not root.is_dir():
            return 0
        return self._count_tree(root)

    def refresh_counter(self) -> int:
        """Reset the advisory counter from a full scan."""
        total = self.count_images()
        self._counter.reset(total)
        return total

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------

    def _iterdir(self, directory: Path) -> list[Path]:
        try:
            return list(directory.iterdir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageIOError(f"cannot read directory {directory}: {exc}") from exc

    def _scan_images(self, directory: Path) -> list[tuple[Path, os.stat_result]]:
        found = []
        for path in self._iterdir(directory):
            if not is_image_file(path.name):
                continue
            try:
                if not path.is_file():
                    continue
                stat = path.stat()
            except OSError:
                continue
            found.append((path, stat))
        return found

    def _count_tree(self, root: Path) -> int:
        count = 0
        for path in root.rglob("*"):
            if is_image_file(path.name) and path.is_file():
                count += 1
        return count

    def _create_exclusive(self, album_dir: Path, extension: str) -> tuple[Path, BinaryIO]:
        """Open a fresh `<id>.<ext>` for writing; regenerate the id on collision."""
        for _ in range(MAX_ID_ATTEMPTS):
            path = album_dir / generate_image_filename(new_id(), extension)
            try:
                return path, open(path, "xb")
            except FileExistsError:
                logger.debug("Filename collision on %s, regenerating", path)
                continue
            except OSError as exc:
                raise StorageIOError(f"cannot create {path}: {exc}") from exc

        raise StorageIOError(f"no free filename in {album_dir}")

    def _discard_partial(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove partial file %s: %s", path, exc)
