"""Inline embedding of image payloads as ``data:`` URIs."""

from __future__ import annotations

import base64
import os
from pathlib import Path
from urllib.parse import unquote, urlparse

from htmlsmith.core.exceptions import OversizeResourceError, UnreadableResourceError


_FILE_SCHEME = "file://"

_MIME_BY_SUFFIX: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".avif": "image/avif",
    ".ico": "image/x-icon",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def normalise_locator(locator: str) -> str:
    """Strip a ``file://`` scheme from a resource locator."""
    if locator[: len(_FILE_SCHEME)].lower() == _FILE_SCHEME:
        return unquote(urlparse(locator).path)
    return locator


def is_remote(locator: str) -> bool:
    """Return True for locators pointing at a network resource."""
    parsed = urlparse(locator)
    return parsed.scheme.lower() in {"http", "https", "ftp", "data"} or bool(
        parsed.scheme and parsed.netloc
    )


def check_embeddable(locator: str, size_threshold: int, *, base_dir: Path | None = None) -> Path:
    """Return the file behind ``locator`` or raise why it cannot be embedded."""
    normalised = normalise_locator(locator)
    if is_remote(normalised):
        raise UnreadableResourceError(f"Remote resource '{locator}' cannot be embedded")
    path = Path(normalised)
    if base_dir is not None and not path.is_absolute():
        path = base_dir / path
    try:
        size = path.stat().st_size
    except OSError as exc:
        raise UnreadableResourceError(f"Unable to read image resource '{locator}'") from exc
    if not path.is_file() or not os.access(path, os.R_OK):
        raise UnreadableResourceError(f"Unable to read image resource '{locator}'")
    if size > size_threshold:
        raise OversizeResourceError(
            f"Image resource '{locator}' is {size} bytes, above the {size_threshold} byte limit"
        )
    return path


def should_embed(
    locator: str, size_threshold: int, *, base_dir: Path | None = None
) -> str | None:
    """Return the normalised locator when the resource may be inlined.

    Unreadable or oversized resources yield ``None`` so callers keep an
    external reference instead.
    """
    try:
        path = check_embeddable(locator, size_threshold, base_dir=base_dir)
    except (UnreadableResourceError, OversizeResourceError):
        return None
    return str(path)


def guess_mime_type(locator: str, payload: bytes | None = None) -> str | None:
    """Derive a MIME type from the file extension, sniffing ``payload`` as a fallback."""
    suffix = Path(normalise_locator(locator)).suffix.lower()
    mime = _MIME_BY_SUFFIX.get(suffix)
    if mime is not None or payload is None:
        return mime
    return _sniff_mime_type(payload)


def _sniff_mime_type(payload: bytes) -> str | None:
    header = payload[:12]
    if header.startswith(b"\x89PNG"):
        return "image/png"
    if header.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if header.startswith(b"GIF8"):
        return "image/gif"
    if header.startswith(b"BM"):
        return "image/bmp"
    if header[0:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "image/webp"
    return None


def encode_data_uri(data: bytes, mime_hint: str | None = None) -> str:
    """Encode ``data`` as base64, prefixed with a ``data:`` header when typed."""
    payload = base64.b64encode(data).decode("ascii")
    if mime_hint:
        return f"data:{mime_hint};base64,{payload}"
    return payload


def embed_image(path: Path | str, locator: str | None = None) -> str | None:
    """Read an image from disk and return its ``data:`` URI.

    Returns ``None`` when the image type cannot be determined, since an
    untyped payload is not a usable ``src``.
    """
    source = Path(path)
    data = source.read_bytes()
    mime = guess_mime_type(locator or str(source), data)
    if mime is None:
        return None
    return encode_data_uri(data, mime)


__all__ = [
    "check_embeddable",
    "embed_image",
    "encode_data_uri",
    "guess_mime_type",
    "is_remote",
    "normalise_locator",
    "should_embed",
]
