"""
Content sniffing for uploaded images.

The type of an upload is decided by its leading bytes only; the declared
filename and client-supplied content type are ignored. Signatures follow the
WHATWG MIME sniffing table for the image family, plus a few common non-image
formats so rejections carry a meaningful type in logs.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, NamedTuple, Optional

from .naming import get_extension_for_mime


# Bytes inspected from the start of the stream
SNIFF_LEN = 512

logger = logging.getLogger(__name__)


class _Signature(NamedTuple):
    pattern: bytes
    mime_type: str
    mask: Optional[bytes] = None

    def matches(self, head: bytes) -> bool:
        if len(head) < len(self.pattern):
            return False
        if self.mask is None:
            return head.startswith(self.pattern)
        return all(
            (b & m) == p for b, m, p in zip(head, self.mask, self.pattern)
        )


_SIGNATURES: tuple[_Signature, ...] = (
    _Signature(b"%PDF-", "application/pdf"),
    _Signature(b"%!PS-Adobe-", "application/postscript"),
    _Signature(b"GIF87a", "image/gif"),
    _Signature(b"GIF89a", "image/gif"),
    _Signature(b"\x89PNG\r\n\x1a\n", "image/png"),
    _Signature(b"\xff\xd8\xff", "image/jpeg"),
    _Signature(b"BM", "image/bmp"),
    _Signature(b"\x00\x00\x01\x00", "image/x-icon"),
    _Signature(b"\x00\x00\x02\x00", "image/x-icon"),
    _Signature(
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
        mask=b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
    ),
    _Signature(
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
        mask=b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
    ),
    _Signature(b"OggS\x00", "application/ogg"),
    _Signature(b"PK\x03\x04", "application/zip"),
    _Signature(b"\x1f\x8b\x08", "application/x-gzip"),
    _Signature(b"Rar!\x1a\x07", "application/x-rar-compressed"),
    _Signature(b"\x00asm", "application/wasm"),
)

# Control bytes that mark content as binary rather than text
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def sniff_mime(head: bytes) -> str:
    """Classify leading bytes into a MIME type. Never raises."""
    head = head[:SNIFF_LEN]
    for signature in _SIGNATURES:
        if signature.matches(head):
            return signature.mime_type

    if any(b in _BINARY_BYTES for b in head):
        return "application/octet-stream"
    return "text/plain; charset=utf-8"


def classify(stream: BinaryIO) -> tuple[str, bool]:
    """
    Decide whether a stream holds an accepted image.

    Reads up to SNIFF_LEN bytes and rewinds the stream to offset 0 so the
    caller can copy it in full afterwards.

    Returns:
        (extension, accepted). extension is '' when not accepted.
    """
    try:
        head = stream.read(SNIFF_LEN)
        stream.seek(0)
    except (OSError, ValueError) as exc:
        logger.debug("sniff: stream not readable: %s", exc)
        return "", False

    if not head:
        return "", False

    mime_type = sniff_mime(head)
    extension = get_extension_for_mime(mime_type)
    if extension is None:
        logger.debug("sniff: rejected content type %s", mime_type)
        return "", False
    return extension, True
