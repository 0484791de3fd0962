"""
Stored image naming conventions.

Filename format: <id>.<ext>

- id: 4 lowercase hex characters from the identity allocator
- ext: canonical extension of the sniffed type (jpg, png, gif, webp)

Listings also recognise `.jpeg` so files placed by older writers still show up.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Extensions (without dot) that count as images when scanning a directory
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})

# Accepted MIME types and the extension a stored file gets for each
MIME_TO_EXTENSION = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

FILENAME_PATTERN = re.compile(r"^([0-9a-f]{4})\.(jpg|png|gif|webp)$")


@dataclass(frozen=True)
class ParsedFilename:
    stem: str
    extension: str


def generate_image_filename(stem: str, extension: str) -> str:
    """
    Build a stored filename.

    Raises:
        ValueError: If the stem is not 4 hex chars or the extension is not a
            canonical stored extension.
    """
    ext = extension.lstrip(".").lower()
    if not re.match(r"^[0-9a-f]{4}$", stem):
        raise ValueError(f"stem must be 4 lowercase hex characters, got {stem!r}")
    if ext not in MIME_TO_EXTENSION.values():
        raise ValueError(f"unsupported extension {extension!r}")
    return f"{stem}.{ext}"


def parse_image_filename(filename: str) -> Optional[ParsedFilename]:
    """Split a stored filename; None for anything else, including paths."""
    match = FILENAME_PATTERN.fullmatch(filename)
    if not match:
        return None
    return ParsedFilename(stem=match.group(1), extension=match.group(2))


def get_extension(filename: str) -> str:
    """Lowercase extension without the dot ('' if none)."""
    suffix = Path(filename).suffix
    return suffix[1:].lower() if suffix else ""


def is_image_file(filename: str) -> bool:
    return get_extension(filename) in IMAGE_EXTENSIONS


def get_extension_for_mime(mime_type: str) -> Optional[str]:
    """Canonical extension for an accepted MIME type, None for anything else."""
    mime_lower = mime_type.lower().split(";")[0].strip()
    return MIME_TO_EXTENSION.get(mime_lower)
