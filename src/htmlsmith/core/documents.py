"""Source documents, positional ranges and clone-time configuration transfer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple
from uuid import uuid4

from .config import RenderConfig


class SourceRange(NamedTuple):
    """Half-open character span inside a document's text."""

    begin: int
    end: int

    def contains(self, other: SourceRange) -> bool:
        """Return True when ``other`` lies entirely inside this span."""
        return self.begin <= other.begin and other.end <= self.end


@dataclass(eq=False)
class Document:
    """Source text under export together with its rendering configuration.

    Documents compare by identity; ``key`` is what caches use to tell two
    documents apart even when their texts and ranges coincide.
    """

    text: str
    path: Path | None = None
    config: RenderConfig = field(default_factory=RenderConfig)
    key: str = field(default_factory=lambda: uuid4().hex, init=False)

    @classmethod
    def from_path(cls, path: Path | str, *, config: RenderConfig | None = None) -> Document:
        """Load a document from disk."""
        source = Path(path)
        text = source.read_text(encoding="utf-8")
        return cls(text=text, path=source.resolve(), config=config or RenderConfig())

    @property
    def directory(self) -> Path:
        """Directory used to resolve relative resources."""
        if self.path is not None:
            return self.path.parent
        return Path.cwd()

    def slice(self, span: SourceRange) -> str:
        """Return the live text covered by ``span``."""
        return self.text[span.begin : span.end]


@dataclass(frozen=True)
class FormulaFragment:
    """A formula occurrence destined to be rendered as an image."""

    source: str
    range: SourceRange
    origin: Document
    display: bool = False


CloneHook = Callable[[Document, Document], None]


def propagate_render_config(source: Document, target: Document) -> None:
    """Give ``target`` an independent copy of the rendering configuration of ``source``."""
    target.config = source.config.model_copy(deep=True)


def clone_document(document: Document, hooks: tuple[CloneHook, ...] = ()) -> Document:
    """Create a working copy of ``document`` and run clone hooks on it."""
    clone = Document(text=document.text, path=document.path)
    for hook in hooks:
        hook(document, clone)
    return clone


__all__ = [
    "CloneHook",
    "Document",
    "FormulaFragment",
    "SourceRange",
    "clone_document",
    "propagate_render_config",
]
