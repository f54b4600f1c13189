"""Rendered formula previews and the positional cache holding them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from hashlib import sha256
from pathlib import Path
from typing import NamedTuple

from .documents import Document, SourceRange


REFERENCE_BASELINE = 720.0
"""Height, in big points above the page bottom, at which previews are typeset."""


class PreviewStatus(Enum):
    """Lifecycle of a rendered preview."""

    PENDING = auto()
    READY = auto()
    FAILED = auto()


class BoundingBox(NamedTuple):
    """Extent of a rendered formula in page coordinates (big points)."""

    left: float
    bottom: float
    right: float
    top: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom

    def is_empty(self) -> bool:
        """Return True when the box encloses no ink."""
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class RenderedPreview:
    """Result of rasterising one formula."""

    output_file: Path
    bounding_box: BoundingBox
    status: PreviewStatus = PreviewStatus.READY

    @property
    def ready(self) -> bool:
        return self.status is PreviewStatus.READY


def ascent(bounding_box: BoundingBox) -> float:
    """Return the vertical offset of a preview relative to its baseline.

    Previews are typeset with their baseline at :data:`REFERENCE_BASELINE`, so
    the distance from that line to the bottom of the box is the (negative)
    depth of the formula. The value feeds ``vertical-align`` directly.
    """
    return bounding_box.bottom - REFERENCE_BASELINE


def _digest(text: str) -> str:
    return sha256(text.encode("utf-8")).hexdigest()


class PreviewCache:
    """Previews keyed by owning document and source range.

    Each entry remembers a digest of the text it was rendered from; lookups
    whose live text no longer matches are reported as misses. Edits that keep
    the span byte-identical are not detected.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, int, int], tuple[str, RenderedPreview]] = {}

    @staticmethod
    def _key(document: Document, span: SourceRange) -> tuple[str, int, int]:
        return (document.key, span.begin, span.end)

    def get(self, document: Document, span: SourceRange) -> RenderedPreview | None:
        """Return the preview registered for ``span`` when still current."""
        entry = self._entries.get(self._key(document, span))
        if entry is None:
            return None
        digest, preview = entry
        if digest != _digest(document.slice(span)):
            return None
        return preview

    def put(self, document: Document, span: SourceRange, preview: RenderedPreview) -> None:
        """Register ``preview`` for ``span``, replacing any previous entry."""
        self._entries[self._key(document, span)] = (_digest(document.slice(span)), preview)

    def invalidate(self, document: Document, span: SourceRange | None = None) -> None:
        """Drop one entry, or every entry owned by ``document``."""
        if span is not None:
            self._entries.pop(self._key(document, span), None)
            return
        for key in [key for key in self._entries if key[0] == document.key]:
            del self._entries[key]

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        document, span = item
        if not isinstance(document, Document):
            return False
        return self.get(document, SourceRange(*span)) is not None

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "REFERENCE_BASELINE",
    "BoundingBox",
    "PreviewCache",
    "PreviewStatus",
    "RenderedPreview",
    "ascent",
]
