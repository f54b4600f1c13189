"""Configuration models used by the export pipeline.

RenderConfig

`embed_max_size` (`int`)
: Largest image, in bytes, that may be inlined as a `data:` URI. Larger or
  unreadable images keep their external reference.

`label_prefix` (`str`)
: Prefix of the `alt` text given to generated formula previews when the
  formula source is not available.

`preview_mode` (`str | None`)
: Name of the registered preview renderer used for formulas. Formulas are left
  untouched when unset.

`working_dir` (`Path | None`)
: Directory under which rendered previews are stored. Defaults to the
  document directory, then the current directory.

`image_directory` (`str`)
: Sub-directory of `working_dir` receiving preview images.

`dpi` (`int`)
: Rasterisation resolution of formula previews.

`preamble` (`str`)
: Extra LaTeX inserted before `\\begin{document}` when rendering formulas.

ExportOptions

`embed_max_size` (`int | None`)
: Per-export override of `RenderConfig.embed_max_size`.

`protected_chars` (`tuple[tuple[str, str], ...]`)
: Additional character replacements applied to attribute values on top of
  the default HTML protections.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_EMBED_MAX_SIZE = 262144
DEFAULT_LABEL_PREFIX = "org-eq:"
DEFAULT_PROTECTED_CHARS: tuple[tuple[str, str], ...] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
)


class RenderConfig(BaseModel):
    """Renderer-tunable options owned by a document."""

    model_config = ConfigDict(extra="forbid")

    embed_max_size: int = Field(default=DEFAULT_EMBED_MAX_SIZE, ge=0)
    label_prefix: str = DEFAULT_LABEL_PREFIX
    preview_mode: str | None = None
    working_dir: Path | None = None
    image_directory: str = "ltximg"
    dpi: int = Field(default=150, gt=0)
    preamble: str = ""


class ExportOptions(BaseModel):
    """Options scoped to a single export run."""

    model_config = ConfigDict(extra="forbid")

    embed_max_size: int | None = Field(default=None, ge=0)
    protected_chars: tuple[tuple[str, str], ...] = ()


def merge_protected_chars(
    extra: Iterable[tuple[str, str]] = (),
) -> tuple[tuple[str, str], ...]:
    """Return the default protections extended with run-specific entries.

    Entries in ``extra`` replace defaults sharing the same character.
    """
    merged = dict(DEFAULT_PROTECTED_CHARS)
    merged.update(dict(extra))
    return tuple(merged.items())


def protect_text(text: str, protections: Iterable[tuple[str, str]]) -> str:
    """Apply character protections to a piece of text."""
    table = dict(protections)
    return "".join(table.get(char, char) for char in text)


__all__ = [
    "DEFAULT_EMBED_MAX_SIZE",
    "DEFAULT_LABEL_PREFIX",
    "DEFAULT_PROTECTED_CHARS",
    "ExportOptions",
    "RenderConfig",
    "merge_protected_chars",
    "protect_text",
]
